"""
Key-value storage contract.

Every persisted data set lives in one named slot holding serialized JSON.
Writes are best effort: `write_slot` logs and swallows store failures so
the in-memory result of an operation still reaches the caller.
"""

from typing import Optional, Protocol

import structlog

logger = structlog.get_logger(__name__)

# ── Slot keys ─────────────────────────────────────────────────────────────

RULES_KEY = "securepay.rules.v1"
THRESHOLD_CONFIG_KEY = "securepay.threshold.config.v1"
AUDIT_LOG_KEY = "securepay.audit.logs.v1"
FEEDBACK_KEY = "securepay.feedback.v1"
INTEGRATIONS_KEY = "securepay.integrations.v1"
RUNTIME_SETTINGS_KEY = "securepay.runtime.settings.v1"


class KeyValueStore(Protocol):
    """Protocol for slot storage."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> None:
        ...


class InMemoryKeyValueStore:
    """
    In-memory slot store.

    NOT FOR PRODUCTION USE - data is lost on restart.
    """

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._slots: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._slots.get(key)

    async def set(self, key: str, value: str) -> None:
        self._slots[key] = value

    def keys(self) -> list[str]:
        return list(self._slots)


async def read_slot(store: KeyValueStore, key: str) -> Optional[str]:
    """Read a slot; an unavailable store reads as empty."""
    try:
        return await store.get(key)
    except Exception as e:
        logger.warning("storage_read_failed", key=key, error=str(e))
        return None


async def write_slot(store: KeyValueStore, key: str, value: str) -> bool:
    """Write a slot. Returns False (and logs) instead of raising on failure."""
    try:
        await store.set(key, value)
        return True
    except Exception as e:
        logger.warning("storage_write_failed", key=key, error=str(e))
        return False
