from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta

import structlog

from app.models import Attendance, TravelDirection
from app.services.enrichment_service import ProfileEnricher, RideMatch
from app.services.error_codes import ErrorCode
from app.services.exceptions import MatchQueryFailed, ServiceError
from app.store.base import DocumentStore, StoreError

logger = structlog.get_logger(__name__)

MATCH_WINDOW = timedelta(minutes=30)


@dataclass(frozen=True)
class TravelReference:
    airport: str | None
    timestamp: datetime | None
    direction: TravelDirection

    @classmethod
    def from_attendance(cls, attendance: Attendance, direction: TravelDirection) -> TravelReference:
        airport, timestamp = attendance.leg(direction)
        return cls(airport=airport, timestamp=timestamp, direction=direction)

    @property
    def is_complete(self) -> bool:
        return bool(self.airport) and self.timestamp is not None


def match_window(timestamp: datetime) -> tuple[datetime, datetime]:
    return timestamp - MATCH_WINDOW, timestamp + MATCH_WINDOW


def _is_match(
    candidate: Attendance,
    event_id: str,
    requester_id: str,
    reference: TravelReference,
    window_start: datetime,
    window_end: datetime,
) -> bool:
    # Re-checked here whatever the store managed to filter
    if candidate.user_id == requester_id:
        return False
    if candidate.event_id != event_id or candidate.attending is not True:
        return False
    airport, timestamp = candidate.leg(reference.direction)
    if airport != reference.airport or timestamp is None:
        return False
    return window_start <= timestamp <= window_end


@dataclass
class DirectionMatches:
    reference: TravelReference
    matches: list[RideMatch] = field(default_factory=list)
    error: ServiceError | None = None

    @property
    def direction(self) -> TravelDirection:
        return self.reference.direction

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RideMatches:
    event_id: str
    arrival: DirectionMatches | None = None
    departure: DirectionMatches | None = None

    def sections(self) -> list[DirectionMatches]:
        return [s for s in (self.arrival, self.departure) if s is not None]


class RideMatcher:
    """Finds attendees travelling through the same airport around the same time."""

    def __init__(
        self,
        store: DocumentStore,
        enricher: ProfileEnricher | None = None,
        max_workers: int = 2,
    ) -> None:
        self._store = store
        self._enricher = enricher or ProfileEnricher(store)
        self._max_workers = max(1, max_workers)

    def find_matches(
        self,
        event_id: str,
        requester_id: str,
        reference: TravelReference,
    ) -> list[Attendance]:
        """Attendance records of other attendees inside the ±30 minute window.

        Returns an empty list without touching the store when the reference
        leg has no airport or no time. Store failures raise MatchQueryFailed;
        nothing partial is returned.
        """
        if not reference.is_complete:
            return []

        window_start, window_end = match_window(reference.timestamp)
        try:
            candidates = self._store.query_attendance(
                event_id,
                reference.direction,
                reference.airport,
                window_start,
                window_end,
                exclude_user_id=requester_id,
            )
        except StoreError as exc:
            logger.warning(
                "match_query_failed",
                event_id=event_id,
                direction=reference.direction.value,
                error=str(exc),
            )
            raise MatchQueryFailed(
                ErrorCode.MATCH_QUERY_FAILED.value,
                f"failed to load {reference.direction.value} matches",
            ) from exc

        return [
            candidate
            for candidate in candidates
            if _is_match(candidate, event_id, requester_id, reference, window_start, window_end)
        ]

    def find_enriched_matches(
        self,
        event_id: str,
        requester_id: str,
        reference: TravelReference,
    ) -> list[RideMatch]:
        return self._enricher.enrich(self.find_matches(event_id, requester_id, reference))

    def _lookup(self, event_id: str, requester_id: str, reference: TravelReference) -> DirectionMatches:
        try:
            matches = self.find_enriched_matches(event_id, requester_id, reference)
        except ServiceError as exc:
            return DirectionMatches(reference=reference, error=exc)
        return DirectionMatches(reference=reference, matches=matches)

    def find_ride_matches(self, event_id: str, requester_id: str, attendance: Attendance) -> RideMatches:
        """Arrival and departure matches for ``attendance``, looked up concurrently.

        A direction is only looked up when the requester has both its airport
        and time. Each direction carries its own error; one failing does not
        affect the other.
        """
        references = [
            TravelReference.from_attendance(attendance, direction)
            for direction in (TravelDirection.ARRIVAL, TravelDirection.DEPARTURE)
        ]
        references = [ref for ref in references if ref.is_complete]

        result = RideMatches(event_id=event_id)
        if not references:
            return result

        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(references))) as pool:
            futures = [
                pool.submit(self._lookup, event_id, requester_id, ref) for ref in references
            ]
            sections = [future.result() for future in futures]

        for section in sections:
            if section.direction == TravelDirection.ARRIVAL:
                result.arrival = section
            else:
                result.departure = section

        logger.info(
            "ride_matches_found",
            event_id=event_id,
            user_id=requester_id,
            arrival=None if result.arrival is None else len(result.arrival.matches),
            departure=None if result.departure is None else len(result.departure.matches),
            failed=[s.direction.value for s in result.sections() if not s.ok],
        )
        return result
