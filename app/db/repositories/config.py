"""Repository for runtime configuration entries."""

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.config_entry import ConfigEntry

logger = logging.getLogger(__name__)


class ConfigRepository:
    """Key/value store backed by the config table.

    Writes are upserts keyed on the unique ``key`` column, so repeating the
    same write converges to the same row. Storage errors propagate to the
    caller untouched.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_key(self, key: str) -> ConfigEntry | None:
        """Get a config entry by key."""
        stmt = select(ConfigEntry).where(ConfigEntry.key == key)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_value(self, key: str) -> Any | None:
        """Get the stored value for a key, or None if it was never written."""
        entry = await self.get_by_key(key)
        return entry.value if entry else None

    async def upsert(self, key: str, value: Any) -> ConfigEntry:
        """Create or update a single entry."""
        entries = await self.upsert_many({key: value})
        return entries[0]

    async def upsert_many(self, values: Mapping[str, Any]) -> list[ConfigEntry]:
        """Create or update several entries in one commit."""
        try:
            entries = [await self._stage(key, value) for key, value in values.items()]
            await self.session.commit()
        except IntegrityError:
            # Another request inserted one of the keys first; retry as updates
            await self.session.rollback()
            logger.info(f"Concurrent insert on config keys {list(values)}, retrying as update")
            entries = [await self._stage(key, value) for key, value in values.items()]
            await self.session.commit()

        for entry in entries:
            await self.session.refresh(entry)
        return entries

    async def _stage(self, key: str, value: Any) -> ConfigEntry:
        now = datetime.now(timezone.utc)
        entry = await self.get_by_key(key)
        if entry:
            entry.value = value
            entry.updated_at = now
        else:
            entry = ConfigEntry(key=key, value=value, updated_at=now)
            self.session.add(entry)
            await self.session.flush()
        return entry
