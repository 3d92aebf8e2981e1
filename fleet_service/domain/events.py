"""Domain events raised by the ``Vehicle`` aggregate."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Union

from .enums import VehicleStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class VehicleStatusChanged:
    vehicle_id: str
    status: VehicleStatus
    occurred_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class VehicleLocationUpdated:
    vehicle_id: str
    latitude: float
    longitude: float
    occurred_at: datetime = field(default_factory=_utcnow)


DomainEvent = Union[VehicleStatusChanged, VehicleLocationUpdated]


def event_to_dict(event: DomainEvent) -> dict[str, Any]:
    """JSON-friendly representation, tagged with the event type."""
    data = asdict(event)
    data["type"] = type(event).__name__
    data["occurred_at"] = event.occurred_at.isoformat()
    if isinstance(event, VehicleStatusChanged):
        data["status"] = event.status.value
    return data
