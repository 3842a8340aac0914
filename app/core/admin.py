"""Administrator allow-list checks."""

import logging
import os

from app.config import settings
from app.core.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)


def get_admin_emails() -> list[str]:
    """Parse ADMIN_EMAILS into normalized addresses.

    The environment is read on every call so a changed list applies without
    a restart; the loaded settings (including .env) are the fallback.
    """
    raw = os.environ.get("ADMIN_EMAILS", settings.ADMIN_EMAILS)
    if not raw:
        logger.warning("ADMIN_EMAILS is not set. No admins configured.")
        return []

    return [email.strip().lower() for email in raw.split(",") if email.strip()]


def is_admin(email: str | None) -> bool:
    """Check if an e-mail address belongs to an administrator."""
    if not email:
        return False

    normalized = email.strip().lower()
    result = normalized in get_admin_emails()
    logger.debug(f"Admin check for {normalized}: {result}")
    return result


def require_admin(email: str | None) -> None:
    """Raise UnauthorizedError unless the e-mail is on the allow-list."""
    if not is_admin(email):
        logger.warning(f"Unauthorized admin access attempt: {email}")
        raise UnauthorizedError("Admin access required")


def get_admin_list(requestor_email: str | None) -> list[str]:
    """Return the configured administrators; only admins may ask."""
    require_admin(requestor_email)
    return get_admin_emails()
