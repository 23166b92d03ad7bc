"""Research store: row-level CRUD for every research record.

``ResearchStore`` is the narrow persistence interface the services depend
on.  Concrete backends implement three primitives (``_write``, ``_read``,
``_scan``) over *kinds* of record; the typed query methods are shared.

Store failures never propagate into service control flow: a backend that
cannot complete an operation reports a :class:`PersistenceWarning` and
returns ``None`` / ``[]`` / ``False``, and callers proceed with defaults.

``InMemoryStore`` is a thread-safe dict-backed implementation with JSON
snapshot support, used by tests and short-lived CLI sessions.
"""

from __future__ import annotations

import json
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from sustained_research.domain.entities import (
    Argument,
    DiscoveredSource,
    ForumContribution,
    ProjectActivity,
    Publication,
    ReadingListItem,
    ReadingSession,
    ResearchProject,
    Text,
)
from sustained_research.domain.enums import (
    ContributionStatus,
    ProjectStatus,
    ReadingStatus,
)

R = TypeVar("R")


class RecordKind:
    """Describes one kind of stored record."""

    def __init__(
        self,
        name: str,
        record_type: type,
        id_attr: str,
        time_attr: str,
        from_dict: Callable[[Mapping[str, Any]], Any],
    ) -> None:
        self.name = name
        self.record_type = record_type
        self.id_attr = id_attr
        self.time_attr = time_attr
        self.from_dict = from_dict

    def record_id(self, record: Any) -> str:
        return getattr(record, self.id_attr)

    def sort_key(self, record: Any) -> float:
        return getattr(record, self.time_attr) or 0.0


KINDS: dict[str, RecordKind] = {
    kind.name: kind
    for kind in (
        RecordKind("project", ResearchProject, "project_id", "start_time", ResearchProject.from_dict),
        RecordKind("text", Text, "text_id", "added_at", Text.from_dict),
        RecordKind("reading_item", ReadingListItem, "item_id", "added_at", ReadingListItem.from_dict),
        RecordKind("session", ReadingSession, "session_id", "created_at", ReadingSession.from_dict),
        RecordKind("argument", Argument, "argument_id", "created_at", Argument.from_dict),
        RecordKind("source", DiscoveredSource, "source_id", "discovered_at", DiscoveredSource.from_dict),
        RecordKind("publication", Publication, "publication_id", "created_at", Publication.from_dict),
        RecordKind("contribution", ForumContribution, "contribution_id", "created_at",
                   ForumContribution.from_dict),
        RecordKind("activity", ProjectActivity, "activity_id", "timestamp", ProjectActivity.from_dict),
    )
}


class ResearchStore(ABC):
    """Abstract persistence interface for research records."""

    # -- backend primitives ---------------------------------------------------

    @abstractmethod
    def _write(self, kind: RecordKind, record: Any) -> bool:
        """Insert or replace *record*. Returns ``False`` on failure."""

    @abstractmethod
    def _read(self, kind: RecordKind, record_id: str) -> Any | None:
        """Return the record with *record_id*, or ``None``."""

    @abstractmethod
    def _scan(self, kind: RecordKind, project_id: str | None = None) -> list[Any]:
        """Return all records of *kind*, optionally for one project, oldest first."""

    # -- helpers --------------------------------------------------------------

    def _save(self, kind_name: str, record: R) -> R | None:
        return record if self._write(KINDS[kind_name], record) else None

    # -- projects -------------------------------------------------------------

    def add_project(self, project: ResearchProject) -> ResearchProject | None:
        return self._save("project", project)

    def update_project(self, project: ResearchProject) -> ResearchProject | None:
        return self._save("project", project)

    def get_project(self, project_id: str) -> ResearchProject | None:
        return self._read(KINDS["project"], project_id)

    def list_projects(self, status: ProjectStatus | None = None) -> list[ResearchProject]:
        projects = self._scan(KINDS["project"])
        if status is not None:
            projects = [p for p in projects if p.status is status]
        return projects

    # -- library texts --------------------------------------------------------

    def add_text(self, text: Text) -> Text | None:
        return self._save("text", text)

    def get_text(self, text_id: str) -> Text | None:
        return self._read(KINDS["text"], text_id)

    def find_text(self, title: str) -> Text | None:
        """Return the first library text whose title matches case-insensitively."""
        wanted = title.strip().lower()
        for text in self._scan(KINDS["text"]):
            if text.title.strip().lower() == wanted:
                return text
        return None

    # -- reading list ---------------------------------------------------------

    def add_reading_item(self, item: ReadingListItem) -> ReadingListItem | None:
        return self._save("reading_item", item)

    def update_reading_item(self, item: ReadingListItem) -> ReadingListItem | None:
        return self._save("reading_item", item)

    def get_reading_item(self, item_id: str) -> ReadingListItem | None:
        return self._read(KINDS["reading_item"], item_id)

    def list_reading_items(
        self,
        project_id: str,
        status: ReadingStatus | None = None,
    ) -> list[ReadingListItem]:
        items = self._scan(KINDS["reading_item"], project_id)
        if status is not None:
            items = [i for i in items if i.status is status]
        return items

    def find_reading_item(self, project_id: str, text_id: str) -> ReadingListItem | None:
        for item in self._scan(KINDS["reading_item"], project_id):
            if item.text_id == text_id:
                return item
        return None

    # -- reading sessions -----------------------------------------------------

    def add_session(self, session: ReadingSession) -> ReadingSession | None:
        return self._save("session", session)

    def get_session(self, session_id: str) -> ReadingSession | None:
        return self._read(KINDS["session"], session_id)

    def list_sessions(
        self,
        project_id: str | None = None,
        text_id: str | None = None,
    ) -> list[ReadingSession]:
        sessions = self._scan(KINDS["session"], project_id)
        if text_id is not None:
            sessions = [s for s in sessions if s.text_id == text_id]
        return sessions

    # -- arguments ------------------------------------------------------------

    def add_argument(self, argument: Argument) -> Argument | None:
        return self._save("argument", argument)

    def update_argument(self, argument: Argument) -> Argument | None:
        return self._save("argument", argument)

    def get_argument(self, argument_id: str) -> Argument | None:
        return self._read(KINDS["argument"], argument_id)

    def list_arguments(self, project_id: str | None = None) -> list[Argument]:
        return self._scan(KINDS["argument"], project_id)

    # -- discovered sources ---------------------------------------------------

    def add_discovered_source(self, source: DiscoveredSource) -> DiscoveredSource | None:
        return self._save("source", source)

    def list_discovered_sources(self, project_id: str) -> list[DiscoveredSource]:
        return self._scan(KINDS["source"], project_id)

    # -- publications ---------------------------------------------------------

    def add_publication(self, publication: Publication) -> Publication | None:
        return self._save("publication", publication)

    def list_publications(
        self,
        project_id: str | None = None,
        since: float | None = None,
    ) -> list[Publication]:
        publications = self._scan(KINDS["publication"], project_id)
        if since is not None:
            publications = [p for p in publications if p.created_at >= since]
        return publications

    # -- community contributions ----------------------------------------------

    def add_contribution(self, contribution: ForumContribution) -> ForumContribution | None:
        return self._save("contribution", contribution)

    def update_contribution(self, contribution: ForumContribution) -> ForumContribution | None:
        return self._save("contribution", contribution)

    def list_contributions(
        self,
        project_id: str | None = None,
        text_id: str | None = None,
        status: ContributionStatus | None = None,
    ) -> list[ForumContribution]:
        """Contributions for a project; *text_id* keeps those about that text
        plus project-wide ones (no text)."""
        contributions = self._scan(KINDS["contribution"], project_id)
        if text_id is not None:
            contributions = [c for c in contributions if c.text_id in (text_id, None)]
        if status is not None:
            contributions = [c for c in contributions if c.status is status]
        return contributions

    # -- activity log ---------------------------------------------------------

    def add_activity(self, activity: ProjectActivity) -> ProjectActivity | None:
        return self._save("activity", activity)

    def list_activities(self, project_id: str, limit: int = 0) -> list[ProjectActivity]:
        activities = self._scan(KINDS["activity"], project_id)
        return activities[-limit:] if limit > 0 else activities


# ===================================================================== #
#  In-memory backend                                                     #
# ===================================================================== #

class InMemoryStore(ResearchStore):
    """Thread-safe dict-backed store with JSON snapshots."""

    def __init__(self) -> None:
        self._tables: dict[str, dict[str, Any]] = {name: {} for name in KINDS}
        self._lock = threading.Lock()

    def _write(self, kind: RecordKind, record: Any) -> bool:
        with self._lock:
            self._tables[kind.name][kind.record_id(record)] = record
        return True

    def _read(self, kind: RecordKind, record_id: str) -> Any | None:
        with self._lock:
            return self._tables[kind.name].get(record_id)

    def _scan(self, kind: RecordKind, project_id: str | None = None) -> list[Any]:
        with self._lock:
            records = list(self._tables[kind.name].values())
        if project_id is not None:
            records = [r for r in records if getattr(r, "project_id", None) == project_id]
        return sorted(records, key=kind.sort_key)

    def __len__(self) -> int:
        with self._lock:
            return sum(len(table) for table in self._tables.values())

    def clear(self) -> None:
        with self._lock:
            for table in self._tables.values():
                table.clear()

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        """Serialize every table to plain dicts."""
        with self._lock:
            return {
                name: [record.to_dict() for record in table.values()]
                for name, table in self._tables.items()
            }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> InMemoryStore:
        store = cls()
        for name, rows in data.items():
            kind = KINDS.get(name)
            if kind is None:
                continue
            for row in rows:
                record = kind.from_dict(row)
                store._tables[name][kind.record_id(record)] = record
        return store

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, json_str: str) -> InMemoryStore:
        return cls.from_dict(json.loads(json_str))
