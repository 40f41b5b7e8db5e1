from __future__ import annotations

import json
import logging

import redis  # type: ignore[import-untyped]
from redis.exceptions import RedisError  # type: ignore[import-untyped]

from juniorhub.services._shared.ports import EventPublisher, PublishedEvent

log = logging.getLogger(__name__)


class RedisEventPublisher(EventPublisher):
    """
    Publishes room events on a Redis pub/sub channel read by the gateway.

    Delivery is at-most-once: a Redis outage drops the event and logs it,
    it never fails the HTTP request that produced it.
    """

    def __init__(self, r: redis.Redis, channel: str) -> None:
        self.r = r
        self.channel = channel

    def publish(self, event: PublishedEvent) -> None:
        message = json.dumps(event.to_wire(), default=str)
        try:
            receivers = self.r.publish(self.channel, message)
        except RedisError:
            log.error(
                "realtime.publish_failed",
                extra={"room": event.room_id, "event_type": event.type},
                exc_info=True,
            )
            return
        log.debug(
            "realtime.published receivers=%s",
            receivers,
            extra={"room": event.room_id, "event_type": event.type},
        )
