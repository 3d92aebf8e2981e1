"""
Vehicle endpoints
=================

GET  /api/v1/vehicles/nearby                        -- public radius search
GET  /api/v1/vehicles/user                          -- caller's rented vehicles
GET  /api/v1/vehicles/{vehicle_id}                  -- single vehicle
GET  /api/v1/vehicles/{vehicle_id}/allowed-transitions
POST /api/v1/vehicles                               -- register (technician)
PUT  /api/v1/vehicles/{vehicle_id}/status           -- optimistic status update
PUT  /api/v1/vehicles/{vehicle_id}/location         -- apply a position update
POST /api/v1/vehicles/{vehicle_id}/rent
POST /api/v1/vehicles/{vehicle_id}/return
"""

from fastapi import APIRouter, Depends, Request

from fleet_service.api.dependencies import (
    get_caller,
    get_command_service,
    get_query_service,
)
from fleet_service.api.errors import http_error
from fleet_service.api.middleware import limiter
from fleet_service.api.schemas import (
    AllowedTransitionsResponse,
    ErrorResponse,
    LocationResponse,
    RegisterVehicleRequest,
    UpdateLocationRequest,
    UpdateVehicleStatusRequest,
    VehicleStatusResponse,
    VehicleSummaryResponse,
)
from fleet_service.application.commands import VehicleCommandService
from fleet_service.application.identity import CallerIdentity
from fleet_service.application.queries import VehicleQueryService
from fleet_service.config import settings
from fleet_service.domain.enums import Role
from fleet_service.domain.results import Error, ErrorCode

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


# ── Queries ───────────────────────────────────────────────────────────


@router.get(
    "/nearby",
    response_model=list[VehicleSummaryResponse],
    summary="Vehicles within a radius (km) of a point",
)
@limiter.limit(settings.rate_limit)
async def get_nearby_vehicles(
    request: Request,
    latitude: float,
    longitude: float,
    radius: float = settings.default_search_radius_km,
    queries: VehicleQueryService = Depends(get_query_service),
):
    result = await queries.get_nearby_vehicles(latitude, longitude, radius)
    if result.is_failure:
        raise http_error(result.error)
    return result.value


@router.get(
    "/user",
    response_model=list[VehicleSummaryResponse],
    summary="Vehicles currently rented by the caller",
)
@limiter.limit(settings.rate_limit)
async def get_user_vehicles(
    request: Request,
    caller: CallerIdentity = Depends(get_caller),
    queries: VehicleQueryService = Depends(get_query_service),
):
    result = await queries.get_user_vehicles(caller.user_id)
    if result.is_failure:
        raise http_error(result.error)
    return result.value


@router.get(
    "/{vehicle_id}",
    response_model=VehicleSummaryResponse,
    summary="Get one vehicle",
)
@limiter.limit(settings.rate_limit)
async def get_vehicle(
    request: Request,
    vehicle_id: str,
    caller: CallerIdentity = Depends(get_caller),
    queries: VehicleQueryService = Depends(get_query_service),
):
    result = await queries.get_vehicle(vehicle_id)
    if result.is_failure:
        raise http_error(result.error)
    return result.value


@router.get(
    "/{vehicle_id}/allowed-transitions",
    response_model=AllowedTransitionsResponse,
    summary="Statuses the caller may move this vehicle to",
)
@limiter.limit(settings.rate_limit)
async def get_allowed_transitions(
    request: Request,
    vehicle_id: str,
    caller: CallerIdentity = Depends(get_caller),
    queries: VehicleQueryService = Depends(get_query_service),
):
    result = await queries.get_allowed_transitions(vehicle_id, caller.effective_role)
    if result.is_failure:
        raise http_error(result.error)
    return AllowedTransitionsResponse(vehicle_id=vehicle_id, allowed=result.value)


# ── Commands ──────────────────────────────────────────────────────────


@router.post(
    "",
    status_code=201,
    response_model=VehicleSummaryResponse,
    summary="Register a vehicle in the fleet (technicians only)",
)
@limiter.limit(settings.rate_limit)
async def register_vehicle(
    request: Request,
    body: RegisterVehicleRequest,
    caller: CallerIdentity = Depends(get_caller),
    commands: VehicleCommandService = Depends(get_command_service),
):
    result = await commands.register_vehicle(
        body.vehicle_id,
        body.latitude,
        body.longitude,
        body.status,
        caller.effective_role,
    )
    if result.is_failure:
        raise http_error(result.error)
    vehicle = result.value
    return VehicleSummaryResponse(
        vehicle_id=vehicle.id,
        latitude=vehicle.location.latitude,
        longitude=vehicle.location.longitude,
        status=vehicle.status,
    )


@router.put(
    "/{vehicle_id}/status",
    response_model=VehicleStatusResponse,
    summary="Update status with optimistic concurrency control",
    responses={403: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    description=(
        "The request names the status the caller believes the vehicle has. "
        "If it has changed in the meantime the update is rejected with 409 "
        "and the actual status, and the caller must re-read and resubmit."
    ),
)
@limiter.limit(settings.rate_limit)
async def update_vehicle_status(
    request: Request,
    vehicle_id: str,
    body: UpdateVehicleStatusRequest,
    caller: CallerIdentity = Depends(get_caller),
    commands: VehicleCommandService = Depends(get_command_service),
):
    result = await commands.update_vehicle_status(
        vehicle_id,
        body.expected_current_status,
        body.new_status,
        caller.effective_role,
        user_id=caller.user_id,
    )
    if result.is_failure:
        raise http_error(result.error, attempted_status=body.new_status)
    return VehicleStatusResponse(vehicle_id=vehicle_id, status=result.value)


@router.put(
    "/{vehicle_id}/location",
    response_model=LocationResponse,
    summary="Apply a location update (technicians only)",
)
@limiter.limit(settings.rate_limit)
async def update_vehicle_location(
    request: Request,
    vehicle_id: str,
    body: UpdateLocationRequest,
    caller: CallerIdentity = Depends(get_caller),
    commands: VehicleCommandService = Depends(get_command_service),
):
    if caller.effective_role != Role.TECHNICIAN:
        raise http_error(
            Error(ErrorCode.FORBIDDEN, "Only technicians can update vehicle locations.")
        )
    result = await commands.update_vehicle_location(
        vehicle_id, body.latitude, body.longitude
    )
    if result.is_failure:
        raise http_error(result.error)
    location = result.value
    return LocationResponse(
        vehicle_id=vehicle_id,
        latitude=location.latitude,
        longitude=location.longitude,
    )


@router.post(
    "/{vehicle_id}/rent",
    response_model=VehicleStatusResponse,
    summary="Rent a vehicle for the caller",
)
@limiter.limit(settings.rate_limit)
async def rent_vehicle(
    request: Request,
    vehicle_id: str,
    caller: CallerIdentity = Depends(get_caller),
    commands: VehicleCommandService = Depends(get_command_service),
):
    result = await commands.rent_vehicle(vehicle_id, caller.user_id)
    if result.is_failure:
        raise http_error(result.error)
    return VehicleStatusResponse(vehicle_id=vehicle_id, status=result.value)


@router.post(
    "/{vehicle_id}/return",
    response_model=VehicleStatusResponse,
    summary="Return a vehicle rented by the caller",
)
@limiter.limit(settings.rate_limit)
async def return_vehicle(
    request: Request,
    vehicle_id: str,
    caller: CallerIdentity = Depends(get_caller),
    commands: VehicleCommandService = Depends(get_command_service),
):
    result = await commands.return_vehicle(vehicle_id, caller.user_id)
    if result.is_failure:
        raise http_error(result.error)
    return VehicleStatusResponse(vehicle_id=vehicle_id, status=result.value)
