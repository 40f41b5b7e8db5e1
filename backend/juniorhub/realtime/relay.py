"""
Bridge from Redis pub/sub to the gateway.

The API process publishes room events (see
:class:`~juniorhub.infra.redis.redis_event_publisher.RedisEventPublisher`);
this relay runs inside the gateway process and rebroadcasts them.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING

import redis.asyncio as aioredis  # type: ignore[import-untyped]
from redis.exceptions import RedisError  # type: ignore[import-untyped]

if TYPE_CHECKING:
    from juniorhub.realtime.gateway import ChannelGateway

log = logging.getLogger(__name__)

DEFAULT_RECONNECT_DELAY = 1.0


class RedisEventRelay:
    """
    :param client: An asyncio Redis client.
    :param channel: Pub/sub channel shared with the publishers.
    :param gateway: Gateway receiving the events.
    """

    def __init__(
        self,
        client: aioredis.Redis,
        channel: str,
        gateway: ChannelGateway,
        *,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
    ) -> None:
        self.client = client
        self.channel = channel
        self.gateway = gateway
        self.reconnect_delay = reconnect_delay

    @classmethod
    def from_url(cls, url: str, channel: str, gateway: ChannelGateway) -> RedisEventRelay:
        return cls(aioredis.from_url(url, decode_responses=True), channel, gateway)

    async def run(self) -> None:
        """Subscribe and dispatch until cancelled, resubscribing after outages."""
        while True:
            pubsub = self.client.pubsub()
            try:
                await pubsub.subscribe(self.channel)
                log.info("realtime.relay_subscribed channel=%s", self.channel)
                async for message in pubsub.listen():
                    if message.get("type") != "message":
                        continue
                    await self.dispatch(message["data"])
            except RedisError:
                # Events published meanwhile are lost; clients resync on their own
                log.warning("realtime.relay_disconnected", exc_info=True)
                await asyncio.sleep(self.reconnect_delay)
            finally:
                await pubsub.aclose()

    async def dispatch(self, raw: str | bytes) -> int:
        """Broadcast one published message; malformed ones are logged and skipped."""
        try:
            data = json.loads(raw)
            room_id = data["roomId"]
            event_type = data["type"]
            payload = data.get("payload")
            return await self.gateway.broadcast(room_id, event_type, payload)
        except (ValueError, KeyError, TypeError):
            log.warning("realtime.relay_bad_message")
            return 0
