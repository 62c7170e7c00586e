from fastapi import APIRouter
from pydantic import BaseModel

from app.auth.deps import CurrentUser

router = APIRouter(prefix="/me", tags=["me"])


class MeOut(BaseModel):
    user_id: str
    email: str | None
    display_name: str | None
    photo_url: str | None


@router.get("", response_model=MeOut)
def me(user: CurrentUser):
    return MeOut(
        user_id=user.id,
        email=user.email,
        display_name=user.display_name,
        photo_url=user.photo_url,
    )
