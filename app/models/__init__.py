from app.models.attendance import Attendance, TravelDirection
from app.models.base import Base
from app.models.event import Event, EventAirport
from app.models.ride_request import RideRequest, RideRequestStatus
from app.models.user import User

__all__ = [
    "Base",
    "User",
    "Event",
    "EventAirport",
    "Attendance",
    "TravelDirection",
    "RideRequest",
    "RideRequestStatus",
]
