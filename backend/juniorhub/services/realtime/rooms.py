"""Room naming and event vocabulary shared by producers and the gateway."""

from __future__ import annotations

from enum import Enum

PROJECT_ROOM_PREFIX = "project-"
PERSONAL_ROOM_PREFIX = "user-"


class EventType(str, Enum):
    """Event kinds delivered to room members."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    NOTIFICATION = "notification"


EVENT_TYPES = frozenset(e.value for e in EventType)


def project_room(project_id: int | str) -> str:
    """Room every viewer of a project joins, e.g. ``project-42``."""
    return f"{PROJECT_ROOM_PREFIX}{project_id}"


def personal_room(account_id: int | str) -> str:
    """Room an authenticated connection joins automatically, e.g. ``user-7``."""
    return f"{PERSONAL_ROOM_PREFIX}{account_id}"


def is_personal_room(room_id: str) -> bool:
    return room_id.startswith(PERSONAL_ROOM_PREFIX)
