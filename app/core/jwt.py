"""Bearer token validation against the OIDC identity provider (JWT and opaque)."""

import logging
from dataclasses import dataclass

import httpx
import jwt
from cachetools import TTLCache
from jwt import PyJWKClient, PyJWKClientError

from app.config import settings

logger = logging.getLogger(__name__)

_jwks_cache: TTLCache = TTLCache(maxsize=10, ttl=settings.AUTH_JWKS_CACHE_TTL)

# Short TTL so revoked opaque tokens stop working quickly
_userinfo_cache: TTLCache = TTLCache(maxsize=100, ttl=60)


@dataclass
class TokenUserInfo:
    """Identity extracted from token claims."""

    sub: str
    email: str | None = None
    name: str | None = None


class JWTValidationError(Exception):
    """Raised when token validation fails."""

    pass


def _issuer() -> str:
    return f"{settings.AUTH_ENDPOINT.rstrip('/')}/oidc"


def _get_jwks_client() -> PyJWKClient:
    """Get or create a cached JWKS client for the identity provider."""
    cache_key = "jwks_client"

    if cache_key in _jwks_cache:
        return _jwks_cache[cache_key]

    client = PyJWKClient(f"{_issuer()}/jwks", cache_keys=True)
    _jwks_cache[cache_key] = client
    return client


def _is_jwt(token: str) -> bool:
    """Check if a token looks like a JWT (has 3 dot-separated segments)."""
    return token.count(".") == 2


async def _validate_jwt_token(token: str) -> dict:
    """
    Validate a JWT locally against the provider's signing keys.

    Raises:
        JWTValidationError: If the token is invalid
    """
    try:
        signing_key = _get_jwks_client().get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256", "ES256"],
            audience=settings.AUTH_AUDIENCE,
            issuer=_issuer(),
        )
    except PyJWKClientError as e:
        logger.warning(f"Failed to get signing key from JWKS: {e}")
        raise JWTValidationError(f"Failed to get signing key: {e}") from e
    except jwt.ExpiredSignatureError:
        logger.debug("Token has expired")
        raise JWTValidationError("Token has expired")
    except jwt.PyJWTError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise JWTValidationError(f"Token validation failed: {e}") from e


async def _validate_opaque_token(token: str) -> dict:
    """
    Validate an opaque token through the provider's userinfo endpoint.

    Raises:
        JWTValidationError: If the token is invalid
    """
    if token in _userinfo_cache:
        return _userinfo_cache[token]

    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"{_issuer()}/me",
                headers={"Authorization": f"Bearer {token}"},
                timeout=10.0,
            )
    except httpx.RequestError as e:
        logger.error(f"Failed to call userinfo endpoint: {e}")
        raise JWTValidationError(f"Failed to validate token: {e}") from e

    if response.status_code == 401:
        raise JWTValidationError("Invalid or expired token")

    if response.status_code != 200:
        logger.warning(f"Userinfo request failed with status {response.status_code}")
        raise JWTValidationError(f"Userinfo request failed: {response.status_code}")

    claims = response.json()
    _userinfo_cache[token] = claims
    return claims


async def validate_token(token: str) -> dict:
    """Validate a JWT or opaque token and return its claims."""
    if _is_jwt(token):
        return await _validate_jwt_token(token)
    return await _validate_opaque_token(token)


def extract_user_info_from_claims(claims: dict) -> TokenUserInfo:
    """Build a TokenUserInfo from decoded claims."""
    if "sub" not in claims:
        raise JWTValidationError("Token has no subject")

    return TokenUserInfo(
        sub=claims["sub"],
        email=claims.get("email"),
        name=claims.get("name"),
    )


async def get_user_info_from_token(token: str) -> TokenUserInfo:
    """Validate token and extract user info in one call."""
    claims = await validate_token(token)
    return extract_user_info_from_claims(claims)
