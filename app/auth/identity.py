from __future__ import annotations

from dataclasses import dataclass

import jwt
from jwt import PyJWTError

from app.core.config import settings


@dataclass(frozen=True)
class Identity:
    """What the identity provider vouches for: a stable uid plus display hints."""

    user_id: str
    email: str | None = None
    display_name: str | None = None
    photo_url: str | None = None


def identity_from_dev_token(token: str) -> Identity:
    prefix = settings.dev_auth_prefix
    if not token.startswith(prefix):
        raise ValueError(f"invalid dev token (expected prefix {prefix})")

    user_id = token.removeprefix(prefix).strip()
    if not user_id:
        raise ValueError("missing user id in dev token")

    email = user_id if "@" in user_id else None
    return Identity(user_id=user_id, email=email)


def verify_id_token(token: str) -> Identity:
    if not settings.jwt_secret:
        raise ValueError("identity token verification is not configured")

    options = {"require": ["sub", "exp"]}
    if settings.jwt_audience is None:
        options["verify_aud"] = False

    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            options=options,
        )
    except PyJWTError as exc:
        raise ValueError("invalid identity token") from exc

    user_id = str(claims.get("sub") or "").strip()
    if not user_id:
        raise ValueError("identity token has no subject")

    return Identity(
        user_id=user_id,
        email=claims.get("email"),
        display_name=claims.get("name"),
        photo_url=claims.get("picture"),
    )
