"""SQLAlchemy-backed research store.

One table per record kind.  Each row keeps the columns needed for lookups
(id, owning project, timestamp) and the full record as a JSON payload; the
JSON encoding lives only here, at the store boundary, while services work
with typed records.

Every ``SQLAlchemyError`` is caught, logged and reported as a
:class:`~sustained_research.domain.exceptions.PersistenceWarning`; the
operation then yields no result so callers degrade instead of crashing.
"""

from __future__ import annotations

import logging
import warnings
from typing import Any

from sqlalchemy import JSON, Float, ForeignKey, String, create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from sustained_research.domain.exceptions import PersistenceWarning
from sustained_research.infrastructure.store import RecordKind, ResearchStore

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class _RowMixin:
    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    recorded_at: Mapped[float] = mapped_column(Float, index=True, default=0.0)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)


class ProjectRow(_RowMixin, Base):
    __tablename__ = "research_projects"

    project_id: Mapped[str | None] = mapped_column(String(32), nullable=True)


class TextRow(_RowMixin, Base):
    __tablename__ = "texts"

    project_id: Mapped[str | None] = mapped_column(String(32), nullable=True)


class ReadingItemRow(_RowMixin, Base):
    __tablename__ = "project_reading_lists"

    project_id: Mapped[str | None] = mapped_column(
        ForeignKey("research_projects.id"), index=True, nullable=True
    )


class SessionRow(_RowMixin, Base):
    __tablename__ = "reading_sessions"

    project_id: Mapped[str | None] = mapped_column(
        ForeignKey("research_projects.id"), index=True, nullable=True
    )


class ArgumentRow(_RowMixin, Base):
    __tablename__ = "argument_development"

    project_id: Mapped[str | None] = mapped_column(
        ForeignKey("research_projects.id"), index=True, nullable=True
    )


class SourceRow(_RowMixin, Base):
    __tablename__ = "discovered_sources"

    project_id: Mapped[str | None] = mapped_column(
        ForeignKey("research_projects.id"), index=True, nullable=True
    )


class PublicationRow(_RowMixin, Base):
    __tablename__ = "publications"

    project_id: Mapped[str | None] = mapped_column(
        ForeignKey("research_projects.id"), index=True, nullable=True
    )


class ContributionRow(_RowMixin, Base):
    __tablename__ = "forum_contributions"

    project_id: Mapped[str | None] = mapped_column(
        ForeignKey("research_projects.id"), index=True, nullable=True
    )


class ActivityRow(_RowMixin, Base):
    __tablename__ = "project_activities"

    project_id: Mapped[str | None] = mapped_column(
        ForeignKey("research_projects.id"), index=True, nullable=True
    )


_ROW_TYPES: dict[str, type[_RowMixin]] = {
    "project": ProjectRow,
    "text": TextRow,
    "reading_item": ReadingItemRow,
    "session": SessionRow,
    "argument": ArgumentRow,
    "source": SourceRow,
    "publication": PublicationRow,
    "contribution": ContributionRow,
    "activity": ActivityRow,
}


class SqlStore(ResearchStore):
    """Relational store over any SQLAlchemy URL (SQLite by default).

    Parameters
    ----------
    url:
        SQLAlchemy database URL, e.g. ``"sqlite:///research.db"``.
    echo:
        Log emitted SQL.
    """

    def __init__(self, url: str = "sqlite:///sustained_research.db", echo: bool = False) -> None:
        self.url = url
        self.engine = create_engine(url, echo=echo, future=True)
        Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

    def _degrade(self, operation: str, kind: RecordKind, exc: Exception) -> None:
        logger.warning("SqlStore: %s %s failed: %s", operation, kind.name, exc)
        warnings.warn(
            PersistenceWarning(f"{operation} {kind.name} failed: {exc}"),
            stacklevel=3,
        )

    def _write(self, kind: RecordKind, record: Any) -> bool:
        row_type = _ROW_TYPES[kind.name]
        row = row_type(
            id=kind.record_id(record),
            project_id=getattr(record, "project_id", None),
            recorded_at=kind.sort_key(record),
            payload=record.to_dict(),
        )
        try:
            with self.SessionLocal() as session:
                session.merge(row)
                session.commit()
            return True
        except SQLAlchemyError as exc:
            self._degrade("write", kind, exc)
            return False

    def _read(self, kind: RecordKind, record_id: str) -> Any | None:
        row_type = _ROW_TYPES[kind.name]
        try:
            with self.SessionLocal() as session:
                row = session.get(row_type, record_id)
                return kind.from_dict(row.payload) if row is not None else None
        except SQLAlchemyError as exc:
            self._degrade("read", kind, exc)
            return None

    def _scan(self, kind: RecordKind, project_id: str | None = None) -> list[Any]:
        row_type = _ROW_TYPES[kind.name]
        stmt = select(row_type).order_by(row_type.recorded_at)
        if project_id is not None:
            stmt = stmt.where(row_type.project_id == project_id)
        try:
            with self.SessionLocal() as session:
                return [kind.from_dict(row.payload) for row in session.scalars(stmt)]
        except SQLAlchemyError as exc:
            self._degrade("scan", kind, exc)
            return []

    def dispose(self) -> None:
        self.engine.dispose()
