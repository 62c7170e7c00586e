from __future__ import annotations

from datetime import datetime

from app.api.v1.schemas.events import SchemaBase, TZAwareMixin
from app.models import TravelDirection
from app.services.enrichment_service import RideMatch
from app.services.matching_service import DirectionMatches, RideMatches, match_window


class ErrorOut(SchemaBase):
    code: str
    message: str


class MatchProfileOut(SchemaBase):
    user_id: str
    display_name: str | None = None
    photo_url: str | None = None


class RideMatchOut(TZAwareMixin, SchemaBase):
    user_id: str
    user_name: str | None = None
    user_photo_url: str | None = None
    arrival_airport: str | None = None
    arrival_time: datetime | None = None
    departure_airport: str | None = None
    departure_time: datetime | None = None
    profile: MatchProfileOut | None = None

    @classmethod
    def from_match(cls, match: RideMatch) -> RideMatchOut:
        record = match.attendance
        profile = None
        if match.profile is not None:
            profile = MatchProfileOut(
                user_id=match.profile.id,
                display_name=match.profile.display_name,
                photo_url=match.profile.photo_url,
            )
        return cls(
            user_id=record.user_id,
            user_name=record.user_name,
            user_photo_url=record.user_photo_url,
            arrival_airport=record.arrival_airport,
            arrival_time=record.arrival_time,
            departure_airport=record.departure_airport,
            departure_time=record.departure_time,
            profile=profile,
        )


class DirectionMatchesOut(TZAwareMixin, SchemaBase):
    direction: TravelDirection
    airport: str
    reference_time: datetime
    window_start: datetime
    window_end: datetime
    matches: list[RideMatchOut]
    error: ErrorOut | None = None

    @classmethod
    def from_section(cls, section: DirectionMatches) -> DirectionMatchesOut:
        reference = section.reference
        window_start, window_end = match_window(reference.timestamp)
        error = None
        if section.error is not None:
            error = ErrorOut(code=section.error.code, message=section.error.message)
        return cls(
            direction=reference.direction,
            airport=reference.airport,
            reference_time=reference.timestamp,
            window_start=window_start,
            window_end=window_end,
            matches=[RideMatchOut.from_match(m) for m in section.matches],
            error=error,
        )


class RideMatchesOut(SchemaBase):
    event_id: str
    arrival: DirectionMatchesOut | None = None
    departure: DirectionMatchesOut | None = None

    @classmethod
    def from_result(cls, result: RideMatches) -> RideMatchesOut:
        return cls(
            event_id=result.event_id,
            arrival=DirectionMatchesOut.from_section(result.arrival) if result.arrival else None,
            departure=(
                DirectionMatchesOut.from_section(result.departure) if result.departure else None
            ),
        )
