from __future__ import annotations

import enum
import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.attendance import TravelDirection
from app.models.base import Base, UTCDateTime, utcnow


class RideRequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class RideRequest(Base):
    __tablename__ = "ride_requests"
    __table_args__ = (
        sa.Index("ix_ride_requests_recipient_created_at", "recipient_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    sender_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    recipient_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    event_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[TravelDirection] = mapped_column(
        sa.Enum(
            TravelDirection,
            name="ride_request_type",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    sender_arrival_time: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    sender_departure_time: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    status: Mapped[RideRequestStatus] = mapped_column(
        sa.Enum(
            RideRequestStatus,
            name="ride_request_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=RideRequestStatus.PENDING,
    )
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
