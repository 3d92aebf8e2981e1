"""Translate domain ``Error`` values into HTTP responses."""

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException

from fleet_service.domain.enums import VehicleStatus
from fleet_service.domain.results import Error, ErrorCode

_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.INVALID_ID: 400,
    ErrorCode.INVALID_COORDINATE: 400,
    ErrorCode.INVALID_STATUS: 400,
    ErrorCode.INVALID_USER_ID: 400,
    ErrorCode.INVALID_RADIUS: 400,
    ErrorCode.INVALID_TRANSITION: 422,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.ALREADY_EXISTS: 409,
    ErrorCode.CONCURRENCY_CONFLICT: 409,
    ErrorCode.INCONSISTENT_STATE: 500,
    ErrorCode.PERSISTENCE_ERROR: 503,
}


def http_error(
    error: Error, attempted_status: Optional[VehicleStatus] = None
) -> HTTPException:
    detail: dict = {"code": error.code.value, "message": error.message}
    if error.code == ErrorCode.CONCURRENCY_CONFLICT:
        detail["expected_current_status"] = error.expected.value
        detail["actual_current_status"] = error.actual.value
        if attempted_status is not None:
            detail["attempted_new_status"] = attempted_status.value
    return HTTPException(
        status_code=_STATUS_BY_CODE.get(error.code, 400), detail=detail
    )
