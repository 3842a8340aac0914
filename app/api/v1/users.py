"""Current user endpoints."""

from fastapi import APIRouter

from app.api.deps import CurrentUser
from app.core.admin import is_admin
from app.schemas.user import CurrentUserDetail

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=CurrentUserDetail)
async def get_current_user_profile(
    current_user: CurrentUser,
):
    """Get the current user's identity and whether they may administer models."""
    return CurrentUserDetail(
        sub=current_user.sub,
        email=current_user.email,
        name=current_user.name,
        is_admin=is_admin(current_user.email),
    )
