from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.models import Attendance, Event, RideRequest, TravelDirection, User
from app.models.base import utcnow
from app.store.base import DocumentStore, StoreError, check_in_query_size

_LEG_COLUMNS = {
    TravelDirection.ARRIVAL: (Attendance.arrival_airport, Attendance.arrival_time),
    TravelDirection.DEPARTURE: (Attendance.departure_airport, Attendance.departure_time),
}


class SqlDocumentStore(DocumentStore):
    """DocumentStore over SQLAlchemy; one short-lived session per call."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
        except SQLAlchemyError as exc:
            db.rollback()
            raise StoreError(str(exc)) from exc
        finally:
            db.close()

    def get_event(self, event_id: str) -> Event | None:
        with self._session() as db:
            return db.get(Event, event_id)

    def list_events(self, ending_after: datetime | None = None) -> list[Event]:
        stmt = select(Event)
        if ending_after is not None:
            stmt = stmt.where(Event.ends_at >= ending_after)
        stmt = stmt.order_by(Event.ends_at, Event.starts_at, Event.id)
        with self._session() as db:
            return list(db.scalars(stmt).all())

    def _find_attendance(self, db: Session, user_id: str, event_id: str) -> Attendance | None:
        return db.scalar(
            select(Attendance).where(
                Attendance.user_id == user_id,
                Attendance.event_id == event_id,
            )
        )

    def get_attendance(self, user_id: str, event_id: str) -> Attendance | None:
        with self._session() as db:
            return self._find_attendance(db, user_id, event_id)

    def save_attendance(self, user_id: str, event_id: str, changes: dict[str, Any]) -> Attendance:
        with self._session() as db:
            record = self._find_attendance(db, user_id, event_id)
            if record is None:
                record = Attendance(user_id=user_id, event_id=event_id, attending=False)
                db.add(record)

            for key, value in changes.items():
                setattr(record, key, value)
            record.updated_at = utcnow()

            db.commit()
            db.refresh(record)
            return record

    def query_attendance(
        self,
        event_id: str,
        direction: TravelDirection,
        airport: str,
        window_start: datetime,
        window_end: datetime,
        exclude_user_id: str | None = None,
    ) -> list[Attendance]:
        airport_col, time_col = _LEG_COLUMNS[direction]
        stmt = select(Attendance).where(
            Attendance.event_id == event_id,
            Attendance.attending.is_(True),
            airport_col == airport,
            time_col >= window_start,
            time_col <= window_end,
        )
        if exclude_user_id is not None:
            stmt = stmt.where(Attendance.user_id != exclude_user_id)
        stmt = stmt.order_by(time_col, Attendance.user_id)

        with self._session() as db:
            return list(db.scalars(stmt).all())

    def get_profile(self, user_id: str) -> User | None:
        with self._session() as db:
            return db.get(User, user_id)

    def get_profiles(self, user_ids: Sequence[str]) -> list[User]:
        check_in_query_size(user_ids)
        if not user_ids:
            return []
        with self._session() as db:
            return list(db.scalars(select(User).where(User.id.in_(list(user_ids)))).all())

    def merge_profile(
        self,
        user_id: str,
        email: str | None = None,
        display_name: str | None = None,
        photo_url: str | None = None,
        seen_at: datetime | None = None,
    ) -> User:
        with self._session() as db:
            user = db.get(User, user_id)
            if user is None:
                user = User(id=user_id)
                db.add(user)

            if email is not None:
                user.email = email
            if display_name is not None:
                user.display_name = display_name
            if photo_url is not None:
                user.photo_url = photo_url
            user.last_login_at = seen_at or utcnow()

            db.commit()
            db.refresh(user)
            return user

    def add_ride_request(self, request: RideRequest) -> RideRequest:
        with self._session() as db:
            db.add(request)
            db.commit()
            db.refresh(request)
            return request

    def list_ride_requests(self, recipient_id: str, event_id: str | None = None) -> list[RideRequest]:
        stmt = select(RideRequest).where(RideRequest.recipient_id == recipient_id)
        if event_id is not None:
            stmt = stmt.where(RideRequest.event_id == event_id)
        stmt = stmt.order_by(RideRequest.created_at.desc(), RideRequest.id)
        with self._session() as db:
            return list(db.scalars(stmt).all())
