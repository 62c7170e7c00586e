from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, Request

from app.auth.identity import Identity, identity_from_dev_token, verify_id_token
from app.core.config import settings
from app.models import User
from app.services.error_codes import ErrorCode
from app.store import DocumentStore, StoreError, get_store

logger = structlog.get_logger(__name__)

Store = Annotated[DocumentStore, Depends(get_store)]


def _unauthorized(detail: str = "unauthorized") -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _identify(token: str) -> Identity:
    # Local dev auth only
    if settings.auth_mode == "dev" and settings.env == "local":
        return identity_from_dev_token(token)
    if settings.auth_mode == "jwt":
        return verify_id_token(token)
    raise ValueError("auth not configured")


def get_current_user(request: Request, store: Store) -> User:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        raise _unauthorized("missing bearer token")

    token = auth.removeprefix("Bearer ").strip()
    try:
        identity = _identify(token)
    except ValueError as exc:
        raise _unauthorized(str(exc)) from None

    # Every successful sign-in refreshes the stored profile
    try:
        user = store.merge_profile(
            identity.user_id,
            email=identity.email,
            display_name=identity.display_name,
            photo_url=identity.photo_url,
        )
    except StoreError:
        logger.exception("profile_merge_failed", user_id=identity.user_id)
        raise HTTPException(
            status_code=503,
            detail={"code": ErrorCode.STORE_UNAVAILABLE.value, "message": "failed to load profile"},
        ) from None
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
