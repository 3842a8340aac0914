"""Key/value configuration entries editable at runtime."""

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.base import TimestampMixin


class ConfigEntry(Base, TimestampMixin):
    """A named configuration value such as the Ollama URL or model list."""

    __tablename__ = "config"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    value: Mapped[Any] = mapped_column(JSON().with_variant(JSONB(), "postgresql"))
