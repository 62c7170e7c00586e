from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass

import structlog

from app.models import Attendance, User
from app.services.error_codes import ErrorCode
from app.services.exceptions import EnrichmentFailed
from app.store.base import MAX_IN_QUERY_VALUES, DocumentStore, StoreError

logger = structlog.get_logger(__name__)

PROFILE_BATCH_SIZE = MAX_IN_QUERY_VALUES


@dataclass(frozen=True)
class RideMatch:
    attendance: Attendance
    profile: User | None

    @property
    def user_id(self) -> str:
        return self.attendance.user_id


def chunked(items: Sequence[str], size: int) -> Iterator[Sequence[str]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class ProfileEnricher:
    """Attach each attendee's display profile to their attendance record."""

    def __init__(self, store: DocumentStore, batch_size: int = PROFILE_BATCH_SIZE) -> None:
        if not 1 <= batch_size <= MAX_IN_QUERY_VALUES:
            raise ValueError(f"batch_size must be between 1 and {MAX_IN_QUERY_VALUES}")
        self._store = store
        self._batch_size = batch_size

    def fetch_profiles(self, user_ids: Sequence[str]) -> dict[str, User]:
        distinct_ids = list(dict.fromkeys(user_ids))
        profiles: dict[str, User] = {}
        for batch in chunked(distinct_ids, self._batch_size):
            try:
                found = self._store.get_profiles(batch)
            except StoreError as exc:
                logger.warning("profile_batch_failed", batch_size=len(batch), error=str(exc))
                raise EnrichmentFailed(
                    ErrorCode.ENRICHMENT_FAILED.value, "failed to load attendee profiles"
                ) from exc
            for profile in found:
                profiles[profile.id] = profile
        return profiles

    def enrich(self, records: Sequence[Attendance]) -> list[RideMatch]:
        if not records:
            return []
        profiles = self.fetch_profiles([record.user_id for record in records])
        return [RideMatch(attendance=record, profile=profiles.get(record.user_id)) for record in records]
