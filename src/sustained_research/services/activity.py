"""Project activity log helpers shared by the research services."""

from __future__ import annotations

import logging

from sustained_research.domain.entities import ProjectActivity
from sustained_research.infrastructure.store import ResearchStore

logger = logging.getLogger(__name__)

# Activity types written by the services.
PROJECT_CREATED = "project_created"
PROJECT_COMPLETED = "project_completed"
SOURCE_DISCOVERY = "source_discovery"
READING_PHASE = "reading_phase"
ARGUMENT_CREATED = "argument_created"
ARGUMENT_VALIDATED = "argument_validated"
PUBLICATION = "publication"
COMMUNITY_INPUT = "community_input"
READING_LIST = "reading_list"


def record_activity(
    store: ResearchStore,
    project_id: str,
    activity_type: str,
    description: str,
    timestamp: float,
) -> ProjectActivity | None:
    activity = ProjectActivity(
        project_id=project_id,
        activity_type=activity_type,
        description=description,
        timestamp=timestamp,
    )
    logger.debug("Activity [%s] %s: %s", project_id, activity_type, description)
    return store.add_activity(activity)


def last_activity_time(store: ResearchStore, project_id: str, activity_type: str) -> float | None:
    """Timestamp of the most recent activity of *activity_type*, if any."""
    times = [
        a.timestamp for a in store.list_activities(project_id) if a.activity_type == activity_type
    ]
    return max(times) if times else None
