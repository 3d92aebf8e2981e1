"""Domain enumerations: vehicle statuses and caller roles."""

import enum


class VehicleStatus(str, enum.Enum):
    UNKNOWN = "Unknown"  # explicit "unset"; never a legal target
    AVAILABLE = "Available"
    RENTED = "Rented"
    MAINTENANCE = "Maintenance"
    OUT_OF_SERVICE = "OutOfService"


# Every status a vehicle may actually be in
ASSIGNABLE_STATUSES: tuple[VehicleStatus, ...] = (
    VehicleStatus.AVAILABLE,
    VehicleStatus.RENTED,
    VehicleStatus.MAINTENANCE,
    VehicleStatus.OUT_OF_SERVICE,
)


class Role(str, enum.Enum):
    REGULAR_USER = "User"
    TECHNICIAN = "Technician"
