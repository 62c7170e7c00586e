from fastapi import APIRouter

from app.api.deps import Dispatcher
from app.api.errors import http_error_from_service
from app.api.v1.schemas import RideRequestListOut, RideRequestOut
from app.auth.deps import CurrentUser
from app.services.exceptions import ServiceError

router = APIRouter(prefix="/ride-requests", tags=["ride-requests"])


@router.get("", response_model=RideRequestListOut)
def list_received_requests(
    user: CurrentUser,
    dispatcher: Dispatcher,
    event_id: str | None = None,
):
    try:
        requests = dispatcher.list_requests(user.id, event_id=event_id)
    except ServiceError as err:
        raise http_error_from_service(err) from err
    return RideRequestListOut(items=[RideRequestOut.model_validate(r) for r in requests])
