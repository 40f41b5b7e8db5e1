"""
RealtimeEventService
====================

Producer side of the realtime gateway. HTTP handlers call it after a write
has committed; events are handed to an :class:`EventPublisher` and reach
connected clients at most once.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from juniorhub.services._shared.ports.event_publisher import EventPublisher, PublishedEvent
from juniorhub.services.realtime.rooms import EventType, personal_room, project_room


class RealtimeEventService:
    """Publishes comment and notification events."""

    def __init__(self, publisher: EventPublisher) -> None:
        self.publisher = publisher

    def comment_created(self, project_id: int | str, comment: Mapping[str, Any]) -> None:
        self._publish(project_room(project_id), EventType.CREATED, dict(comment))

    def comment_updated(self, project_id: int | str, comment: Mapping[str, Any]) -> None:
        self._publish(project_room(project_id), EventType.UPDATED, dict(comment))

    def comment_deleted(self, project_id: int | str, comment_id: int | str) -> None:
        self._publish(project_room(project_id), EventType.DELETED, {"id": comment_id})

    def notify_account(self, account_id: int | str, notification: Mapping[str, Any]) -> None:
        """Deliver ``notification`` to every live connection of the account."""
        self._publish(personal_room(account_id), EventType.NOTIFICATION, dict(notification))

    def _publish(self, room_id: str, event_type: EventType, payload: Any) -> None:
        self.publisher.publish(PublishedEvent(room_id=room_id, type=event_type.value, payload=payload))
