from __future__ import annotations

import enum
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UTCDateTime


AIRPORT_CODE_LENGTH = 8


class TravelDirection(str, enum.Enum):
    ARRIVAL = "arrival"
    DEPARTURE = "departure"


class Attendance(Base, TimestampMixin):
    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint("user_id", "event_id", name="uq_attendance_user_event"),
        # airport and time of a leg travel together
        sa.CheckConstraint(
            "(arrival_airport IS NULL) = (arrival_time IS NULL)",
            name="ck_attendance_arrival_pair",
        ),
        sa.CheckConstraint(
            "(departure_airport IS NULL) = (departure_time IS NULL)",
            name="ck_attendance_departure_pair",
        ),
        sa.CheckConstraint(
            "attending OR (arrival_airport IS NULL AND departure_airport IS NULL)",
            name="ck_attendance_no_travel_unless_attending",
        ),
        sa.Index("ix_attendance_event_arrival", "event_id", "arrival_airport", "arrival_time"),
        sa.Index(
            "ix_attendance_event_departure", "event_id", "departure_airport", "departure_time"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    event_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    attending: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    arrival_airport: Mapped[str | None] = mapped_column(String(AIRPORT_CODE_LENGTH), nullable=True)
    arrival_time: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    departure_airport: Mapped[str | None] = mapped_column(String(AIRPORT_CODE_LENGTH), nullable=True)
    departure_time: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    # Denormalized from the owner's profile at save time
    user_name: Mapped[str | None] = mapped_column(String(320), nullable=True)
    user_photo_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    def leg(self, direction: TravelDirection) -> tuple[str | None, datetime | None]:
        if direction == TravelDirection.ARRIVAL:
            return self.arrival_airport, self.arrival_time
        return self.departure_airport, self.departure_time
