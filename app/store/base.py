from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from app.models import Attendance, Event, RideRequest, TravelDirection, User

# Upper bound on values in a single "field in [...]" lookup
MAX_IN_QUERY_VALUES = 30


class StoreError(Exception):
    """The backing store could not complete a read or write."""


class DocumentStore(ABC):
    @abstractmethod
    def get_event(self, event_id: str) -> Event | None:
        """Return the event with its airports, or None."""

    @abstractmethod
    def list_events(self, ending_after: datetime | None = None) -> list[Event]:
        """Events ordered by end then start time, optionally only those still running."""

    @abstractmethod
    def get_attendance(self, user_id: str, event_id: str) -> Attendance | None:
        """Return the (user, event) attendance record, or None."""

    @abstractmethod
    def save_attendance(self, user_id: str, event_id: str, changes: dict[str, Any]) -> Attendance:
        """Create or update the (user, event) record.

        Keys absent from ``changes`` keep their stored value; a ``None`` value
        empties the field.
        """

    @abstractmethod
    def query_attendance(
        self,
        event_id: str,
        direction: TravelDirection,
        airport: str,
        window_start: datetime,
        window_end: datetime,
        exclude_user_id: str | None = None,
    ) -> list[Attendance]:
        """Attending records at ``airport`` whose leg time is in [start, end]."""

    @abstractmethod
    def get_profile(self, user_id: str) -> User | None:
        """Return a single profile, or None."""

    @abstractmethod
    def get_profiles(self, user_ids: Sequence[str]) -> list[User]:
        """Return the profiles that exist for ``user_ids``.

        At most MAX_IN_QUERY_VALUES ids per call; more is a ValueError.
        """

    @abstractmethod
    def merge_profile(
        self,
        user_id: str,
        email: str | None = None,
        display_name: str | None = None,
        photo_url: str | None = None,
        seen_at: datetime | None = None,
    ) -> User:
        """Create the profile or overwrite the provided (non-None) fields."""

    @abstractmethod
    def add_ride_request(self, request: RideRequest) -> RideRequest:
        """Persist a new ride request and return it."""

    @abstractmethod
    def list_ride_requests(self, recipient_id: str, event_id: str | None = None) -> list[RideRequest]:
        """Requests addressed to ``recipient_id``, newest first."""


def check_in_query_size(values: Sequence[Any]) -> None:
    if len(values) > MAX_IN_QUERY_VALUES:
        raise ValueError(
            f"'in' lookups accept at most {MAX_IN_QUERY_VALUES} values, got {len(values)}"
        )
