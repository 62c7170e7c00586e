from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator


def _ensure_tzaware(value: datetime | None) -> datetime | None:
    if value is None:
        return value
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        raise ValueError("datetime must be timezone-aware")
    return value


class SchemaBase(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")


class TZAwareMixin(BaseModel):
    @field_validator(
        "starts_at",
        "ends_at",
        "arrival_time",
        "departure_time",
        "sender_arrival_time",
        "sender_departure_time",
        "reference_time",
        "window_start",
        "window_end",
        "created_at",
        "updated_at",
        mode="after",
        check_fields=False,
    )
    @classmethod
    def _validate_tzaware(cls, value: datetime | None) -> datetime | None:
        return _ensure_tzaware(value)


class AirportOut(SchemaBase):
    code: str
    name: str
    city: str | None = None


class EventOut(TZAwareMixin, SchemaBase):
    id: str
    name: str
    location: str | None = None
    city: str | None = None
    state: str | None = None
    description: str | None = None
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    airports: list[AirportOut] = []


class EventListOut(SchemaBase):
    items: list[EventOut]
    total: int
