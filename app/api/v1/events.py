from datetime import datetime, timezone

from fastapi import APIRouter

from app.api.deps import Attendances, Dispatcher, Matcher
from app.api.errors import http_error_from_service
from app.api.v1.schemas import (
    AttendanceIn,
    AttendanceOut,
    EventListOut,
    EventOut,
    RideMatchesOut,
    RideRequestIn,
    RideRequestOut,
)
from app.auth.deps import CurrentUser, Store
from app.models import Event
from app.services.error_codes import ErrorCode
from app.services.exceptions import (
    ConflictError,
    NotFoundError,
    ServiceError,
    StoreUnavailable,
)
from app.store import StoreError

router = APIRouter(prefix="/events", tags=["events"])


def _load_event(store: Store, event_id: str) -> Event:
    try:
        event = store.get_event(event_id)
    except StoreError as exc:
        raise http_error_from_service(
            StoreUnavailable(ErrorCode.STORE_UNAVAILABLE.value, "failed to load event")
        ) from exc
    if event is None:
        raise http_error_from_service(
            NotFoundError(ErrorCode.EVENT_NOT_FOUND.value, "event not found")
        )
    return event


@router.get("", response_model=EventListOut)
def list_events(store: Store, user: CurrentUser, include_past: bool = False):
    ending_after = None if include_past else datetime.now(timezone.utc)
    try:
        events = store.list_events(ending_after=ending_after)
    except StoreError as exc:
        raise http_error_from_service(
            StoreUnavailable(ErrorCode.STORE_UNAVAILABLE.value, "failed to load events")
        ) from exc
    return EventListOut(items=[EventOut.model_validate(e) for e in events], total=len(events))


@router.get("/{event_id}", response_model=EventOut)
def get_event(event_id: str, store: Store, user: CurrentUser):
    return EventOut.model_validate(_load_event(store, event_id))


@router.get("/{event_id}/attendance", response_model=AttendanceOut)
def get_my_attendance(event_id: str, user: CurrentUser, attendances: Attendances):
    try:
        record = attendances.get_attendance(user.id, event_id)
    except ServiceError as err:
        raise http_error_from_service(err) from err
    if record is None:
        raise http_error_from_service(
            NotFoundError(ErrorCode.ATTENDANCE_NOT_FOUND.value, "no attendance for this event")
        )
    return AttendanceOut.model_validate(record)


@router.put("/{event_id}/attendance", response_model=AttendanceOut)
def set_my_attendance(
    event_id: str,
    payload: AttendanceIn,
    user: CurrentUser,
    attendances: Attendances,
):
    travel = payload.to_travel_update()
    try:
        attending = payload.attending
        if attending is None:
            current = attendances.get_attendance(user.id, event_id)
            attending = travel.sets_any or bool(current and current.attending)
        record = attendances.set_attendance(user, event_id, attending, travel)
    except ServiceError as err:
        raise http_error_from_service(err) from err
    return AttendanceOut.model_validate(record)


@router.get("/{event_id}/matches", response_model=RideMatchesOut)
def get_ride_matches(
    event_id: str,
    user: CurrentUser,
    attendances: Attendances,
    matcher: Matcher,
):
    try:
        record = attendances.get_attendance(user.id, event_id)
        if record is None:
            raise NotFoundError(ErrorCode.ATTENDANCE_NOT_FOUND.value, "no attendance for this event")
        if not record.attending:
            raise ConflictError(ErrorCode.NOT_ATTENDING.value, "not attending this event")
    except ServiceError as err:
        raise http_error_from_service(err) from err

    result = matcher.find_ride_matches(event_id, user.id, record)

    sections = result.sections()
    if sections and all(not s.ok for s in sections):
        raise http_error_from_service(sections[0].error)
    return RideMatchesOut.from_result(result)


@router.post("/{event_id}/ride-requests", response_model=RideRequestOut)
def send_ride_request(
    event_id: str,
    payload: RideRequestIn,
    store: Store,
    user: CurrentUser,
    attendances: Attendances,
    dispatcher: Dispatcher,
):
    _load_event(store, event_id)
    try:
        recipient = store.get_profile(payload.recipient_id)
    except StoreError as exc:
        raise http_error_from_service(
            StoreUnavailable(ErrorCode.STORE_UNAVAILABLE.value, "failed to load recipient")
        ) from exc
    if recipient is None:
        raise http_error_from_service(
            NotFoundError(ErrorCode.USER_NOT_FOUND.value, "recipient not found")
        )

    try:
        sender_attendance = attendances.get_attendance(user.id, event_id)
        request = dispatcher.send_request(
            user.id,
            recipient.id,
            event_id,
            payload.type,
            sender_attendance,
        )
    except ServiceError as err:
        raise http_error_from_service(err) from err
    return RideRequestOut.model_validate(request)
