"""Repository classes for database operations."""

from app.db.repositories.config import ConfigRepository

__all__ = [
    "ConfigRepository",
]
