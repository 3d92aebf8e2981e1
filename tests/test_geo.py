"""Unit tests for the Location value object and spatial helpers."""

import math

import pytest

from fleet_service.domain.geo import (
    Location,
    cell_for,
    covering_cells,
    haversine_km,
    latitude_band,
)
from fleet_service.domain.results import ErrorCode


class TestLocation:
    def test_valid_location(self):
        result = Location.create(47.60, -122.33)
        assert result.is_success
        assert result.value == Location(47.60, -122.33)

    @pytest.mark.parametrize("lat,lng", [(90, 180), (-90, -180), (0, 0)])
    def test_boundaries_are_inclusive(self, lat, lng):
        assert Location.create(lat, lng).is_success

    @pytest.mark.parametrize(
        "lat,lng", [(90.0001, 0), (-91, 0), (0, 180.5), (0, -181), (999, 0)]
    )
    def test_out_of_range_is_rejected(self, lat, lng):
        result = Location.create(lat, lng)
        assert result.is_failure
        assert result.error.code == ErrorCode.INVALID_COORDINATE

    def test_non_finite_is_rejected(self):
        assert Location.create(math.nan, 0).is_failure
        assert Location.create(0, math.inf).is_failure

    def test_non_numeric_is_rejected(self):
        assert Location.create("north", 0).error.code == ErrorCode.INVALID_COORDINATE

    def test_equality_by_value(self):
        assert Location.create(1.5, 2.5).value == Location.create(1.5, 2.5).value

    def test_is_immutable(self):
        loc = Location.create(1.0, 2.0).value
        with pytest.raises(AttributeError):
            loc.latitude = 3.0


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_km(47.6, -122.3, 47.6, -122.3) == 0.0

    def test_known_distance(self):
        # Seattle -> Tacoma ~ 40 km
        d = haversine_km(47.6062, -122.3321, 47.2529, -122.4443)
        assert 38.0 < d < 42.0

    def test_symmetric(self):
        d1 = haversine_km(19.0, 72.0, 20.0, 73.0)
        d2 = haversine_km(20.0, 73.0, 19.0, 72.0)
        assert abs(d1 - d2) < 1e-6

    def test_antipodes(self):
        d = haversine_km(0, 0, 0, 180)
        assert abs(d - math.pi * 6371.0) < 1e-6


class TestSpatialBinning:
    def test_cell_is_string(self):
        assert isinstance(cell_for(Location(47.6, -122.33), 7), str)

    def test_covering_cells_contain_points_inside_radius(self):
        center = Location(47.60, -122.33)
        cells = covering_cells(center, 5.0, resolution=7)
        # Points close to the 5 km edge in several directions
        for lat, lng in [
            (47.644, -122.33),
            (47.556, -122.33),
            (47.60, -122.264),
            (47.60, -122.396),
            (47.631, -122.284),
        ]:
            point = Location(lat, lng)
            assert center.distance_km(point) < 5.0
            assert cell_for(point, 7) in cells

    def test_covering_cells_none_for_huge_radius(self):
        assert covering_cells(Location(0, 0), 5_000.0, resolution=7, max_rings=25) is None

    def test_latitude_band_contains_circle(self):
        center = Location(47.60, -122.33)
        low, high = latitude_band(center, 10.0)
        assert low < 47.60 < high
        assert haversine_km(low, -122.33, 47.60, -122.33) == pytest.approx(10.0, rel=1e-6)

    def test_latitude_band_is_clamped_at_poles(self):
        low, high = latitude_band(Location(89.99, 0), 100.0)
        assert high == 90.0
