from __future__ import annotations

from datetime import date, datetime, time
from typing import Literal

from pydantic import ConfigDict, Field

from app.api.v1.schemas.events import SchemaBase, TZAwareMixin
from app.services.attendance_service import (
    CLEAR,
    KEEP,
    LegUpdate,
    SetTo,
    TravelLeg,
    TravelUpdate,
)


class LegUpdateIn(SchemaBase):
    """One travel leg instruction: keep what is stored, clear it, or set it."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    action: Literal["keep", "clear", "set"] = "set"
    airport: str | None = None
    local_date: date | None = Field(default=None, alias="date")
    local_time: time | None = Field(default=None, alias="time")
    timezone: str = "UTC"

    def to_update(self) -> LegUpdate:
        if self.action == "keep":
            return KEEP
        if self.action == "clear":
            return CLEAR
        return SetTo(
            TravelLeg(
                airport=self.airport,
                local_date=self.local_date,
                local_time=self.local_time,
                tz=self.timezone,
            )
        )


class AttendanceIn(SchemaBase):
    model_config = ConfigDict(extra="forbid")

    # None keeps the stored value (saving details alone still marks attending)
    attending: bool | None = None
    arrival: LegUpdateIn | None = None
    departure: LegUpdateIn | None = None

    def to_travel_update(self) -> TravelUpdate:
        return TravelUpdate(
            arrival=self.arrival.to_update() if self.arrival else KEEP,
            departure=self.departure.to_update() if self.departure else KEEP,
        )


class AttendanceOut(TZAwareMixin, SchemaBase):
    event_id: str
    user_id: str
    attending: bool
    arrival_airport: str | None = None
    arrival_time: datetime | None = None
    departure_airport: str | None = None
    departure_time: datetime | None = None
    user_name: str | None = None
    user_photo_url: str | None = None
    updated_at: datetime
