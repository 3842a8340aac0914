"""SQLAlchemy models."""

from app.models.config_entry import ConfigEntry

__all__ = [
    "ConfigEntry",
]
