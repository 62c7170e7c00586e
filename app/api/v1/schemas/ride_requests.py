from __future__ import annotations

from datetime import datetime

from app.api.v1.schemas.events import SchemaBase, TZAwareMixin
from app.models import RideRequestStatus, TravelDirection


class RideRequestIn(SchemaBase):
    recipient_id: str
    type: TravelDirection


class RideRequestOut(TZAwareMixin, SchemaBase):
    id: str
    sender_id: str
    recipient_id: str
    event_id: str
    type: TravelDirection
    sender_arrival_time: datetime | None = None
    sender_departure_time: datetime | None = None
    status: RideRequestStatus
    read: bool
    created_at: datetime


class RideRequestListOut(SchemaBase):
    items: list[RideRequestOut]
