from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

from app.models import Attendance, TravelDirection, User
from app.models.attendance import AIRPORT_CODE_LENGTH
from app.services.error_codes import ErrorCode
from app.services.exceptions import NotFoundError, StoreUnavailable, ValidationError
from app.store.base import DocumentStore, StoreError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TravelLeg:
    """One flight as entered: airport plus local date and time."""

    airport: str | None
    local_date: date | None = None
    local_time: time | None = None
    tz: str = "UTC"


@dataclass(frozen=True)
class Keep:
    pass


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class SetTo:
    leg: TravelLeg


LegUpdate = Union[Keep, Clear, SetTo]

KEEP = Keep()
CLEAR = Clear()


@dataclass(frozen=True)
class TravelUpdate:
    arrival: LegUpdate = KEEP
    departure: LegUpdate = KEEP

    def for_direction(self, direction: TravelDirection) -> LegUpdate:
        return self.arrival if direction == TravelDirection.ARRIVAL else self.departure

    @property
    def sets_any(self) -> bool:
        return isinstance(self.arrival, SetTo) or isinstance(self.departure, SetTo)


_LEG_FIELDS = {
    TravelDirection.ARRIVAL: ("arrival_airport", "arrival_time"),
    TravelDirection.DEPARTURE: ("departure_airport", "departure_time"),
}


def leg_airport(leg: TravelLeg, direction: TravelDirection) -> str:
    """The airport as stored: surrounding whitespace removed, case kept."""
    airport = (leg.airport or "").strip()
    if not airport:
        raise ValidationError(
            ErrorCode.AIRPORT_REQUIRED.value, f"{direction.value} airport is required"
        )
    if len(airport) > AIRPORT_CODE_LENGTH:
        raise ValidationError(
            ErrorCode.AIRPORT_TOO_LONG.value,
            f"{direction.value} airport must be at most {AIRPORT_CODE_LENGTH} characters",
        )
    return airport


def leg_timestamp(leg: TravelLeg, direction: TravelDirection) -> datetime:
    """UTC instant for the leg's local date and time.

    Wall-clock times skipped by a DST change are rejected; repeated ones
    resolve to the earlier instant.
    """
    label = direction.value
    if leg.local_date is None or leg.local_time is None:
        raise ValidationError(
            ErrorCode.PARTIAL_TRAVEL_DETAILS.value,
            f"{label} date and time must be provided together",
        )
    leg_airport(leg, direction)
    try:
        zone = timezone.utc if leg.tz.upper() == "UTC" else ZoneInfo(leg.tz)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError(
            ErrorCode.INVALID_TIMEZONE.value, f"unknown timezone {leg.tz!r}"
        ) from exc

    wall_clock = leg.local_time.replace(second=0, microsecond=0, tzinfo=None, fold=0)
    local = datetime.combine(leg.local_date, wall_clock)
    instant = local.replace(tzinfo=zone).astimezone(timezone.utc)
    if instant.astimezone(zone).replace(tzinfo=None) != local:
        raise ValidationError(
            ErrorCode.NONEXISTENT_LOCAL_TIME.value,
            f"{label} time {local:%Y-%m-%d %H:%M} does not exist in {leg.tz}",
        )
    return instant


def resolve_travel_changes(attending: bool, travel: TravelUpdate) -> dict[str, Any]:
    """Turn an attendance toggle plus leg instructions into field changes.

    Raises ValidationError before anything is written. Any SetTo implies
    attending; attending=False empties every travel field.
    """
    if not attending and travel.sets_any:
        raise ValidationError(
            ErrorCode.TRAVEL_WITHOUT_ATTENDANCE.value,
            "travel details cannot be saved while marking not attending",
        )

    # every leg is validated before any change is built
    resolved: dict[TravelDirection, tuple[str, datetime]] = {}
    for direction in TravelDirection:
        update = travel.for_direction(direction)
        if isinstance(update, SetTo):
            resolved[direction] = (
                leg_airport(update.leg, direction),
                leg_timestamp(update.leg, direction),
            )

    changes: dict[str, Any] = {"attending": attending or travel.sets_any}
    for direction, (airport_field, time_field) in _LEG_FIELDS.items():
        update = travel.for_direction(direction)
        if not changes["attending"] or isinstance(update, Clear):
            changes[airport_field] = None
            changes[time_field] = None
        elif isinstance(update, SetTo):
            changes[airport_field], changes[time_field] = resolved[direction]
    return changes


class AttendanceManager:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def get_attendance(self, user_id: str, event_id: str) -> Attendance | None:
        try:
            return self._store.get_attendance(user_id, event_id)
        except StoreError as exc:
            raise StoreUnavailable(
                ErrorCode.STORE_UNAVAILABLE.value, "failed to load attendance"
            ) from exc

    def set_attendance(
        self,
        user: User,
        event_id: str,
        attending: bool,
        travel: TravelUpdate | None = None,
    ) -> Attendance:
        changes = resolve_travel_changes(attending, travel or TravelUpdate())
        changes["user_name"] = user.display_name or user.email
        changes["user_photo_url"] = user.photo_url

        try:
            if self._store.get_event(event_id) is None:
                raise NotFoundError(ErrorCode.EVENT_NOT_FOUND.value, "event not found")
            record = self._store.save_attendance(user.id, event_id, changes)
        except StoreError as exc:
            logger.warning("attendance_save_failed", event_id=event_id, user_id=user.id, error=str(exc))
            raise StoreUnavailable(
                ErrorCode.STORE_UNAVAILABLE.value, "failed to save attendance"
            ) from exc

        logger.info(
            "attendance_saved",
            event_id=event_id,
            user_id=user.id,
            attending=record.attending,
            has_arrival=record.arrival_time is not None,
            has_departure=record.departure_time is not None,
        )
        return record
