"""
SQL-backed slot store.

One row per slot in `securepay_kv_slots`, upserted on write.
"""

from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from securepay.db.models import KeyValueSlot

logger = structlog.get_logger(__name__)


class SqlKeyValueStore:
    """KeyValueStore over an async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, key: str) -> Optional[str]:
        async with self._session_factory() as session:
            slot = await session.get(KeyValueSlot, key)
            return slot.value if slot is not None else None

    async def set(self, key: str, value: str) -> None:
        async with self._session_factory() as session:
            try:
                slot = await session.get(KeyValueSlot, key)
                if slot is None:
                    session.add(KeyValueSlot(key=key, value=value))
                else:
                    slot.value = value
                await session.commit()
            except Exception:
                await session.rollback()
                raise

        logger.debug("slot_written", key=key, size=len(value))
