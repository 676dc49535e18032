"""
Audit Ledger - append-only, hash-chained activity log.

Each entry commits to the previous entry's hash, so any edit, deletion or
reordering of stored entries is detectable by walking the chain:

    genesis (prev_hash = 64 zeros) ← entry 1 ← entry 2 ← ...

Usage:
    ledger = AuditLedger(store)
    entry = await ledger.append("Rules Updated", AuditCategory.RULES, "Active rules: 3")
    verification = await ledger.verify()

Persistence is best effort: a failed write is logged and the freshly
built entry is still returned.
"""

import asyncio
import csv
import hashlib
import io
import json
import secrets
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence

import structlog
from pydantic import ValidationError

from securepay.schemas.audit import (
    AuditCategory,
    AuditLogEntry,
    AuditStatus,
    ChainVerification,
)
from securepay.storage.base import AUDIT_LOG_KEY, KeyValueStore, write_slot
from securepay.storage.loaders import dump_models

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

GENESIS_HASH: str = "0" * 64
SYSTEM_ACTOR: str = "system"
LOCAL_ADDRESS: str = "127.0.0.1"

GENESIS_ACTION = "Audit Ledger Initialized"
GENESIS_DETAILS = "Created immutable audit chain for this workspace."

_ID_ALPHABET = string.ascii_uppercase + string.digits

CSV_COLUMNS = [
    "id", "timestamp", "actor", "category", "action",
    "status", "address", "details", "prev_hash", "hash",
]


def _utc_timestamp() -> str:
    """ISO-8601 UTC with millisecond precision, e.g. 2026-01-05T10:00:00.123Z"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _entry_id() -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(5))
    return f"LOG-{int(time.time() * 1000)}-{suffix}"


def compute_entry_hash(
    entry_id: str,
    timestamp: str,
    actor: str,
    action: str,
    category: str,
    details: str,
    address: str,
    status: str,
    prev_hash: str,
) -> str:
    """SHA-256 over the canonical JSON of the entry fields, in fixed order."""
    canonical = json.dumps(
        {
            "id": entry_id,
            "timestamp": timestamp,
            "actor": actor,
            "action": action,
            "category": str(category),
            "details": details,
            "address": address,
            "status": str(status),
            "prev_hash": prev_hash,
        },
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _recompute(entry: AuditLogEntry) -> str:
    return compute_entry_hash(
        entry_id=entry.id,
        timestamp=entry.timestamp,
        actor=entry.actor,
        action=entry.action,
        category=entry.category,
        details=entry.details,
        address=entry.address,
        status=entry.status,
        prev_hash=entry.prev_hash,
    )


def verify_chain(entries_oldest_first: Sequence[AuditLogEntry]) -> ChainVerification:
    """
    Walk the chain oldest → newest.

    Stops at the first entry whose stored hash or prev_hash disagrees with
    the recomputed value and reports its id and the number of entries
    checked, inclusive. An empty chain is valid.
    """
    expected_prev = GENESIS_HASH

    for index, entry in enumerate(entries_oldest_first):
        if entry.prev_hash != expected_prev or entry.hash != _recompute(entry):
            return ChainVerification(is_valid=False, broken_at=entry.id, checked=index + 1)
        expected_prev = entry.hash

    return ChainVerification(is_valid=True, checked=len(entries_oldest_first))


def format_ledger_csv(entries: Sequence[AuditLogEntry]) -> str:
    """Export entries (in the order given) as CSV with every cell quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    buffer.write(",".join(CSV_COLUMNS) + "\n")
    for entry in entries:
        writer.writerow([
            entry.id,
            entry.timestamp,
            entry.actor,
            entry.category,
            entry.action,
            entry.status,
            entry.address,
            entry.details,
            entry.prev_hash,
            entry.hash,
        ])
    return buffer.getvalue().rstrip("\n")


@dataclass(frozen=True)
class StoredChain:
    """
    The ledger slot as read, oldest first.

    `damage` is set when the slot holds something other than a clean list
    of entries: an unreadable store, invalid JSON, or an entry with missing
    or non-string fields. A damaged slot is never rewritten.
    """
    entries: list[AuditLogEntry] = field(default_factory=list)
    damage: Optional[ChainVerification] = None

    @property
    def intact(self) -> bool:
        return self.damage is None


def _damaged(entry_id: Any = None, checked: int = 0) -> ChainVerification:
    return ChainVerification(
        is_valid=False,
        broken_at=entry_id if isinstance(entry_id, str) else None,
        checked=checked,
    )


def parse_stored_chain(raw: Optional[str]) -> StoredChain:
    """
    Shape-check a serialized chain.

    Only the presence and string type of each field is checked here. Field
    values (an unknown category, a wrong hash) are left to verify_chain.
    """
    if raw is None or raw == "":
        return StoredChain()
    try:
        payload = json.loads(raw)
    except ValueError:
        return StoredChain(damage=_damaged())
    if not isinstance(payload, list):
        return StoredChain(damage=_damaged())

    entries: list[AuditLogEntry] = []
    damage: Optional[ChainVerification] = None
    for index, item in enumerate(payload):
        try:
            entries.append(AuditLogEntry.model_validate(item, strict=True))
        except ValidationError:
            if damage is None:
                entry_id = item.get("id") if isinstance(item, dict) else None
                damage = _damaged(entry_id, index + 1)
    return StoredChain(entries, damage)


class AuditLedger:
    """
    Hash-chained audit log over a single storage slot.

    Appends are read-modify-write on the whole chain, so they run under an
    asyncio lock. Writers in other processes sharing the same store are not
    serialized by it.
    """

    def __init__(
        self,
        store: KeyValueStore,
        identity: Optional[Callable[[], Optional[str]]] = None,
        default_address: str = LOCAL_ADDRESS,
    ):
        """
        Args:
            store: Slot store holding the serialized chain
            identity: Returns the current session user, if any, for attribution
            default_address: Source address used when none is supplied
        """
        self.store = store
        self._identity = identity
        self._default_address = default_address
        self._lock = asyncio.Lock()

    # =========================================================================
    # CHAIN ACCESS
    # =========================================================================

    async def _read_chain(self) -> StoredChain:
        try:
            raw = await self.store.get(AUDIT_LOG_KEY)
        except Exception as e:
            logger.warning("audit_ledger_read_failed", error=str(e))
            return StoredChain(damage=_damaged())

        chain = parse_stored_chain(raw)
        if not chain.intact:
            logger.warning(
                "audit_ledger_damaged",
                broken_at=chain.damage.broken_at,
                readable_entries=len(chain.entries),
            )
        return chain

    async def _write_chain(self, chain: list[AuditLogEntry]) -> bool:
        return await write_slot(self.store, AUDIT_LOG_KEY, dump_models(chain))

    def _resolve_actor(self, actor: Optional[str]) -> str:
        if actor and actor.strip():
            return actor
        if self._identity is not None:
            resolved = self._identity()
            if resolved and resolved.strip():
                return resolved
        return SYSTEM_ACTOR

    def _create_entry(
        self,
        action: str,
        category: AuditCategory,
        details: str,
        status: AuditStatus,
        actor: str,
        address: str,
        prev_hash: str,
    ) -> AuditLogEntry:
        entry_id = _entry_id()
        timestamp = _utc_timestamp()
        return AuditLogEntry(
            id=entry_id,
            timestamp=timestamp,
            actor=actor,
            action=action,
            category=category.value,
            details=details,
            address=address,
            status=status.value,
            prev_hash=prev_hash,
            hash=compute_entry_hash(
                entry_id=entry_id,
                timestamp=timestamp,
                actor=actor,
                action=action,
                category=category,
                details=details,
                address=address,
                status=status,
                prev_hash=prev_hash,
            ),
        )

    async def _ensure_genesis(self) -> StoredChain:
        """Caller must hold the lock. A damaged slot is returned untouched."""
        stored = await self._read_chain()
        if stored.entries or not stored.intact:
            return stored

        genesis = self._create_entry(
            action=GENESIS_ACTION,
            category=AuditCategory.SYSTEM,
            details=GENESIS_DETAILS,
            status=AuditStatus.SUCCESS,
            actor=SYSTEM_ACTOR,
            address=LOCAL_ADDRESS,
            prev_hash=GENESIS_HASH,
        )
        await self._write_chain([genesis])
        logger.info("audit_ledger_initialized", genesis_id=genesis.id)
        return StoredChain([genesis])

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    async def ensure_initialized(self) -> None:
        """Create the genesis entry if the ledger is empty. Idempotent."""
        async with self._lock:
            await self._ensure_genesis()

    async def append(
        self,
        action: str,
        category: AuditCategory,
        details: str,
        status: AuditStatus = AuditStatus.SUCCESS,
        actor: Optional[str] = None,
        address: Optional[str] = None,
    ) -> AuditLogEntry:
        """
        Append an entry linked to the current chain head.

        Returns the new entry even if persisting it failed. Nothing is
        written while the stored chain is damaged.
        """
        async with self._lock:
            stored = await self._ensure_genesis()
            chain = list(stored.entries)
            prev_hash = chain[-1].hash if chain else GENESIS_HASH

            entry = self._create_entry(
                action=action,
                category=category,
                details=details,
                status=status,
                actor=self._resolve_actor(actor),
                address=address or self._default_address,
                prev_hash=prev_hash,
            )
            if stored.intact:
                persisted = await self._write_chain([*chain, entry])
            else:
                persisted = False
                logger.error("audit_entry_not_persisted", entry_id=entry.id, action=action)

        logger.info(
            "audit_entry_appended",
            entry_id=entry.id,
            action=action,
            category=category.value,
            status=status.value,
            actor=entry.actor,
            persisted=persisted,
        )
        return entry

    async def list_entries(self) -> list[AuditLogEntry]:
        """All readable entries, most recent first."""
        await self.ensure_initialized()
        stored = await self._read_chain()
        return list(reversed(stored.entries))

    async def verify(
        self,
        entries: Optional[Sequence[AuditLogEntry]] = None,
    ) -> ChainVerification:
        """
        Verify chain integrity.

        Args:
            entries: Entries most recent first (as returned by list_entries);
                the stored chain is read when omitted
        """
        if entries is None:
            stored = await self._read_chain()
            verification = verify_chain(stored.entries)
            damage = stored.damage
            # Entries before the damaged position are the same in both walks
            if damage and (verification.is_valid or verification.checked >= damage.checked):
                verification = damage
        else:
            verification = verify_chain(list(reversed(entries)))

        if not verification.is_valid:
            logger.warning(
                "audit_chain_broken",
                broken_at=verification.broken_at,
                checked=verification.checked,
            )
        return verification
