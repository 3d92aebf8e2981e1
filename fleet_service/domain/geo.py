"""
Geographic value object and spatial helpers.

* ``Location``      -- immutable, range-checked coordinate (value object).
* ``haversine_km``  -- great-circle distance on a spherical Earth.
* H3 helpers        -- spatial binning used by the repository to narrow a
  radius search down to a handful of hexagonal cells before the exact
  distance check.

Complexity
----------
* ``haversine_km``:   O(1)
* ``covering_cells``: O(k^2) cells for ``k`` rings; ``k`` grows linearly
  with ``radius_km / edge_length(resolution)``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import h3

from .results import ErrorCode, Result

EARTH_RADIUS_KM = 6_371.0


def haversine_km(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Return the great-circle distance in **km** between two points."""
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    # min() guards against a > 1 from floating point drift on antipodes
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(min(1.0, a)))


# ── Value Object ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float

    @classmethod
    def create(cls, latitude: float, longitude: float) -> Result[Location]:
        """Validate ranges and build a ``Location``.  Never raises."""
        try:
            lat, lng = float(latitude), float(longitude)
        except (TypeError, ValueError):
            return Result.fail(
                ErrorCode.INVALID_COORDINATE, "Coordinates must be numbers."
            )
        if not math.isfinite(lat) or not -90.0 <= lat <= 90.0:
            return Result.fail(
                ErrorCode.INVALID_COORDINATE,
                "Latitude must be between -90 and 90.",
            )
        if not math.isfinite(lng) or not -180.0 <= lng <= 180.0:
            return Result.fail(
                ErrorCode.INVALID_COORDINATE,
                "Longitude must be between -180 and 180.",
            )
        return Result.ok(cls(lat, lng))

    def distance_km(self, other: Location) -> float:
        return haversine_km(
            self.latitude, self.longitude, other.latitude, other.longitude
        )


# ── Spatial binning (H3) ──────────────────────────────────────────────


def cell_for(location: Location, resolution: int = 7) -> str:
    """Map a location to its H3 hexagonal cell index.  O(1)."""
    return h3.latlng_to_cell(location.latitude, location.longitude, resolution)


def rings_for_radius(radius_km: float, resolution: int = 7) -> int:
    """
    Number of ``grid_disk`` rings needed to cover ``radius_km``.

    Neighbouring cell centres are at least ``sqrt(3) x min_edge`` apart and
    the smallest H3 edge at any resolution is above 0.6 x the average, so
    one average edge length per ring (+1 for the centre cell offset)
    over-covers the circle everywhere on the globe.
    """
    edge_km = h3.average_hexagon_edge_length(resolution, unit="km")
    return int(math.ceil(radius_km / edge_km)) + 1


def covering_cells(
    center: Location,
    radius_km: float,
    resolution: int = 7,
    max_rings: int = 25,
) -> Optional[set[str]]:
    """
    Return every H3 cell that may hold a point within ``radius_km`` of
    ``center``, or ``None`` when that would take more than ``max_rings``
    rings (the caller should use a coarser pre-filter instead).
    """
    k = rings_for_radius(radius_km, resolution)
    if k > max_rings:
        return None
    return set(h3.grid_disk(cell_for(center, resolution), k))


def latitude_band(center: Location, radius_km: float) -> tuple[float, float]:
    """Latitude interval that contains the whole search circle."""
    delta = math.degrees(radius_km / EARTH_RADIUS_KM)
    return max(-90.0, center.latitude - delta), min(90.0, center.latitude + delta)
