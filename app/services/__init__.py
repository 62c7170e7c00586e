from app.services.attendance_service import AttendanceManager, TravelLeg, TravelUpdate
from app.services.enrichment_service import ProfileEnricher, RideMatch
from app.services.matching_service import RideMatcher, RideMatches, TravelReference
from app.services.ride_request_service import RideRequestDispatcher

__all__ = [
    "AttendanceManager",
    "TravelLeg",
    "TravelUpdate",
    "ProfileEnricher",
    "RideMatch",
    "RideMatcher",
    "RideMatches",
    "TravelReference",
    "RideRequestDispatcher",
]
