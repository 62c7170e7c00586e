from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable

import structlog

from app.models import Attendance, RideRequest, RideRequestStatus, TravelDirection
from app.models.base import utcnow
from app.services.error_codes import ErrorCode
from app.services.exceptions import RequestSendFailed, StoreUnavailable, ValidationError
from app.store.base import DocumentStore, StoreError

logger = structlog.get_logger(__name__)

# Called with each newly persisted request; delivery (push, email) lives behind it
RideRequestListener = Callable[[RideRequest], None]


class RideRequestDispatcher:
    def __init__(
        self,
        store: DocumentStore,
        listeners: Iterable[RideRequestListener] = (),
    ) -> None:
        self._store = store
        self._listeners: list[RideRequestListener] = list(listeners)

    def add_listener(self, listener: RideRequestListener) -> None:
        self._listeners.append(listener)

    def send_request(
        self,
        sender_id: str,
        recipient_id: str,
        event_id: str,
        type: TravelDirection | str,
        sender_attendance: Attendance | None,
    ) -> RideRequest:
        """Persist a pending, unread ride request from sender to recipient.

        Every call writes a new record; repeated requests are not merged.
        Sender times missing from ``sender_attendance`` are stored as null.
        """
        if sender_id == recipient_id:
            raise ValidationError(
                ErrorCode.RIDE_REQUEST_TO_SELF.value, "cannot send a ride request to yourself"
            )

        request = RideRequest(
            id=str(uuid.uuid4()),
            sender_id=sender_id,
            recipient_id=recipient_id,
            event_id=event_id,
            type=TravelDirection(type),
            sender_arrival_time=sender_attendance.arrival_time if sender_attendance else None,
            sender_departure_time=sender_attendance.departure_time if sender_attendance else None,
            status=RideRequestStatus.PENDING,
            read=False,
            created_at=utcnow(),
        )

        try:
            saved = self._store.add_ride_request(request)
        except StoreError as exc:
            logger.warning(
                "ride_request_send_failed",
                event_id=event_id,
                sender_id=sender_id,
                recipient_id=recipient_id,
                error=str(exc),
            )
            raise RequestSendFailed(
                ErrorCode.REQUEST_SEND_FAILED.value, "failed to send ride request"
            ) from exc

        logger.info(
            "ride_request_sent",
            request_id=saved.id,
            event_id=event_id,
            sender_id=sender_id,
            recipient_id=recipient_id,
            type=saved.type.value,
        )
        self._notify(saved)
        return saved

    def _notify(self, request: RideRequest) -> None:
        for listener in self._listeners:
            try:
                listener(request)
            except Exception:
                # request is already stored
                logger.exception("ride_request_listener_failed", request_id=request.id)

    def list_requests(self, recipient_id: str, event_id: str | None = None) -> list[RideRequest]:
        try:
            return self._store.list_ride_requests(recipient_id, event_id=event_id)
        except StoreError as exc:
            raise StoreUnavailable(
                ErrorCode.STORE_UNAVAILABLE.value, "failed to load ride requests"
            ) from exc
