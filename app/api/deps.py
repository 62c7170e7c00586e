from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from app.auth.deps import Store
from app.core.config import settings
from app.services import (
    AttendanceManager,
    ProfileEnricher,
    RideMatcher,
    RideRequestDispatcher,
)


def get_attendance_manager(store: Store) -> AttendanceManager:
    return AttendanceManager(store)


def get_matcher(store: Store) -> RideMatcher:
    return RideMatcher(store, ProfileEnricher(store), max_workers=settings.match_workers)


def get_dispatcher(request: Request, store: Store) -> RideRequestDispatcher:
    listeners = getattr(request.app.state, "ride_request_listeners", ())
    return RideRequestDispatcher(store, listeners=listeners)


Attendances = Annotated[AttendanceManager, Depends(get_attendance_manager)]
Matcher = Annotated[RideMatcher, Depends(get_matcher)]
Dispatcher = Annotated[RideRequestDispatcher, Depends(get_dispatcher)]
