from app.api.v1.schemas.attendance import AttendanceIn, AttendanceOut, LegUpdateIn
from app.api.v1.schemas.events import AirportOut, EventListOut, EventOut
from app.api.v1.schemas.matches import (
    DirectionMatchesOut,
    ErrorOut,
    MatchProfileOut,
    RideMatchesOut,
    RideMatchOut,
)
from app.api.v1.schemas.ride_requests import RideRequestIn, RideRequestListOut, RideRequestOut

__all__ = [
    "AirportOut",
    "EventOut",
    "EventListOut",
    "AttendanceIn",
    "AttendanceOut",
    "LegUpdateIn",
    "ErrorOut",
    "MatchProfileOut",
    "RideMatchOut",
    "DirectionMatchesOut",
    "RideMatchesOut",
    "RideRequestIn",
    "RideRequestOut",
    "RideRequestListOut",
]
