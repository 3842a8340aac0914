"""User schemas."""

from pydantic import BaseModel


class CurrentUserDetail(BaseModel):
    """Identity of the caller as resolved from the bearer token."""

    sub: str
    email: str | None
    name: str | None
    is_admin: bool


class AdminListResponse(BaseModel):
    admins: list[str]
