from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from app.models import Attendance, Event, RideRequest, TravelDirection, User
from app.store.base import DocumentStore, StoreError, check_in_query_size

EVENT_ID = "devsummit-sf"
OTHER_EVENT_ID = "pycon-la"
BASE_TIME = datetime(2026, 11, 2, 14, 0, tzinfo=timezone.utc)


def add_user(store, user_id: str, name: str | None = None, photo_url: str | None = None):
    return store.merge_profile(user_id, display_name=name, photo_url=photo_url)


def add_attendance(
    store,
    user_id: str,
    event_id: str = EVENT_ID,
    attending: bool = True,
    arrival: tuple[str, datetime] | None = None,
    departure: tuple[str, datetime] | None = None,
):
    changes = {"attending": attending}
    if arrival is not None:
        changes["arrival_airport"], changes["arrival_time"] = arrival
    if departure is not None:
        changes["departure_airport"], changes["departure_time"] = departure
    return store.save_attendance(user_id, event_id, changes)


def attendance(
    user_id: str,
    event_id: str = EVENT_ID,
    attending: bool = True,
    arrival: tuple[str, datetime] | None = None,
    departure: tuple[str, datetime] | None = None,
) -> Attendance:
    """Unsaved record; lets tests build rows the database would reject."""
    record = Attendance(user_id=user_id, event_id=event_id, attending=attending)
    if arrival is not None:
        record.arrival_airport, record.arrival_time = arrival
    if departure is not None:
        record.departure_airport, record.departure_time = departure
    return record


class RecordingStore(DocumentStore):
    """In-memory store that records calls and can be told to fail.

    query_attendance only filters by event, leaving the rest of the matching
    rules to the caller.
    """

    def __init__(
        self,
        records: Sequence[Attendance] = (),
        profiles: Sequence[User] = (),
        fail_on: Sequence[str] = (),
        failing_directions: Sequence[TravelDirection] = (),
    ) -> None:
        self.records = list(records)
        self.profiles = {p.id: p for p in profiles}
        self.events: dict[str, Event] = {EVENT_ID: Event(id=EVENT_ID, name="DevSummit")}
        self.requests: list[RideRequest] = []
        self.calls: dict[str, list[tuple[Any, ...]]] = defaultdict(list)
        self.fail_on = set(fail_on)
        self.failing_directions = set(failing_directions)

    def _record(self, name: str, *args: Any) -> None:
        self.calls[name].append(args)
        if name in self.fail_on:
            raise StoreError(f"{name} unavailable")

    def get_event(self, event_id):
        self._record("get_event", event_id)
        return self.events.get(event_id)

    def list_events(self, ending_after=None):
        self._record("list_events", ending_after)
        return list(self.events.values())

    def get_attendance(self, user_id, event_id):
        self._record("get_attendance", user_id, event_id)
        for record in self.records:
            if record.user_id == user_id and record.event_id == event_id:
                return record
        return None

    def save_attendance(self, user_id, event_id, changes):
        self._record("save_attendance", user_id, event_id, dict(changes))
        record = self.get_attendance(user_id, event_id)
        if record is None:
            record = Attendance(user_id=user_id, event_id=event_id, attending=False)
            self.records.append(record)
        for key, value in changes.items():
            setattr(record, key, value)
        record.updated_at = datetime.now(timezone.utc)
        return record

    def query_attendance(
        self, event_id, direction, airport, window_start, window_end, exclude_user_id=None
    ):
        self._record("query_attendance", event_id, direction, airport, window_start, window_end)
        if direction in self.failing_directions:
            raise StoreError(f"{direction.value} index unavailable")
        return [r for r in self.records if r.event_id == event_id]

    def get_profile(self, user_id):
        self._record("get_profile", user_id)
        return self.profiles.get(user_id)

    def get_profiles(self, user_ids):
        check_in_query_size(user_ids)
        self._record("get_profiles", tuple(user_ids))
        return [self.profiles[uid] for uid in user_ids if uid in self.profiles]

    def merge_profile(self, user_id, email=None, display_name=None, photo_url=None, seen_at=None):
        self._record("merge_profile", user_id)
        user = self.profiles.setdefault(user_id, User(id=user_id))
        user.email = email or user.email
        user.display_name = display_name or user.display_name
        user.photo_url = photo_url or user.photo_url
        return user

    def add_ride_request(self, request):
        self._record("add_ride_request", request.id)
        self.requests.append(request)
        return request

    def list_ride_requests(self, recipient_id, event_id=None):
        self._record("list_ride_requests", recipient_id, event_id)
        return [
            r
            for r in reversed(self.requests)
            if r.recipient_id == recipient_id and (event_id is None or r.event_id == event_id)
        ]
