"""Common API dependencies."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.admin import require_admin
from app.core.exceptions import UnauthorizedError
from app.core.jwt import JWTValidationError, TokenUserInfo, get_user_info_from_token
from app.db.session import async_session_maker
from app.services.ollama_client import OllamaClient

# auto_error disabled so a missing header yields our own 401
optional_bearer = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


def get_ollama_client() -> OllamaClient:
    """Dependency for the Ollama discovery client."""
    return OllamaClient()


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(optional_bearer)],
) -> TokenUserInfo:
    """
    Dependency for getting the current user from a bearer token.

    Raises:
        UnauthorizedError: If token is missing or invalid
    """
    if not credentials:
        raise UnauthorizedError("Missing authorization header")

    try:
        return await get_user_info_from_token(credentials.credentials)
    except JWTValidationError as e:
        raise UnauthorizedError(str(e))


async def get_admin_user(
    user: Annotated[TokenUserInfo, Depends(get_current_user)],
) -> TokenUserInfo:
    """Dependency requiring the current user to be on the admin allow-list."""
    require_admin(user.email)
    return user


# Type aliases for cleaner annotations
DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[TokenUserInfo, Depends(get_current_user)]
AdminUser = Annotated[TokenUserInfo, Depends(get_admin_user)]
Ollama = Annotated[OllamaClient, Depends(get_ollama_client)]
