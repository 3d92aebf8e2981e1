"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from pydantic import BaseModel, Field

from fleet_service.domain.enums import VehicleStatus


# ── Requests ──────────────────────────────────────────────────────────


class UpdateVehicleStatusRequest(BaseModel):
    expected_current_status: VehicleStatus = Field(
        ...,
        description="Status the caller last saw; the update is rejected if it changed.",
    )
    new_status: VehicleStatus


class UpdateLocationRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class RegisterVehicleRequest(BaseModel):
    vehicle_id: str = Field(..., min_length=1, max_length=64)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    status: VehicleStatus = VehicleStatus.AVAILABLE


# ── Responses ─────────────────────────────────────────────────────────


class VehicleSummaryResponse(BaseModel):
    vehicle_id: str
    latitude: float
    longitude: float
    status: VehicleStatus

    model_config = {"from_attributes": True}


class VehicleStatusResponse(BaseModel):
    vehicle_id: str
    status: VehicleStatus


class LocationResponse(BaseModel):
    vehicle_id: str
    latitude: float
    longitude: float


class AllowedTransitionsResponse(BaseModel):
    vehicle_id: str
    allowed: list[VehicleStatus] = []


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: dict | str
