"""
Domain event dispatch.

``DomainEventDispatcher`` routes each event to the handlers registered for
its type.  Repositories call it **after** a successful commit, so handlers
only ever see changes that are durable.

Handlers
--------
* ``log_event``           -- structured log line per event.
* ``RedisEventPublisher`` -- fans events out on a Redis pub/sub channel
  (JSON) for real-time consumers such as map views.

A failing handler is logged and does not stop the others: the write it
reports on has already been committed and cannot be undone from here.
"""

from __future__ import annotations

import json
import logging
from collections import defaultdict
from typing import Awaitable, Callable, Iterable

import redis.asyncio as aioredis

from fleet_service.domain.events import (
    DomainEvent,
    VehicleLocationUpdated,
    VehicleStatusChanged,
    event_to_dict,
)

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], Awaitable[None]]


class DomainEventDispatcher:
    def __init__(self) -> None:
        self._handlers: dict[type, list[EventHandler]] = defaultdict(list)

    def register(self, event_type: type, handler: EventHandler) -> None:
        self._handlers[event_type].append(handler)

    def register_all(self, handler: EventHandler) -> None:
        for event_type in (VehicleStatusChanged, VehicleLocationUpdated):
            self.register(event_type, handler)

    async def dispatch(self, events: Iterable[DomainEvent]) -> None:
        for event in events:
            for handler in self._handlers.get(type(event), []):
                try:
                    await handler(event)
                except Exception:
                    logger.exception(
                        "Handler %r failed for %s on vehicle %s",
                        handler,
                        type(event).__name__,
                        event.vehicle_id,
                    )


async def log_event(event: DomainEvent) -> None:
    if isinstance(event, VehicleStatusChanged):
        logger.info(
            "Vehicle %s status changed to %s", event.vehicle_id, event.status.value
        )
    else:
        logger.debug(
            "Vehicle %s moved to (%.6f, %.6f)",
            event.vehicle_id,
            event.latitude,
            event.longitude,
        )


class RedisEventPublisher:
    """Publish events as JSON on a Redis channel."""

    def __init__(self, client: aioredis.Redis, channel: str):
        self.redis = client
        self.channel = channel

    async def __call__(self, event: DomainEvent) -> None:
        await self.redis.publish(self.channel, json.dumps(event_to_dict(event)))


def build_dispatcher(
    redis_client: aioredis.Redis | None = None,
    channel: str = "fleet:vehicle-events",
) -> DomainEventDispatcher:
    """Dispatcher with the standard handlers wired in."""
    dispatcher = DomainEventDispatcher()
    dispatcher.register_all(log_event)
    if redis_client is not None:
        dispatcher.register_all(RedisEventPublisher(redis_client, channel))
    return dispatcher
