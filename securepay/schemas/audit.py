"""
Audit Ledger Schemas.
"""

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class AuditCategory(StrEnum):
    AUTH = "Auth"
    CASE = "Case"
    SYSTEM = "System"
    REPORT = "Report"
    RISK = "Risk"
    RULES = "Rules"
    INTEGRATION = "Integration"
    MODEL = "Model"


class AuditStatus(StrEnum):
    SUCCESS = "Success"
    FAILED = "Failed"
    WARNING = "Warning"


class AuditLogEntry(BaseModel):
    """
    One append-only ledger entry.

    CRITICAL: entries are never edited or removed. `hash` commits to every
    other field, including `prev_hash`, so any edit breaks the chain.

    Every field is validated as a string only. The ledger writes
    AuditCategory / AuditStatus values, but a stored entry whose category
    or status was altered must still load so verification can flag it.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: str                  # ISO-8601, UTC
    actor: str
    action: str
    category: str                   # AuditCategory value
    details: str
    address: str
    status: str                     # AuditStatus value
    prev_hash: str
    hash: str


class ChainVerification(BaseModel):
    """Result of walking the chain oldest → newest."""
    is_valid: bool
    broken_at: Optional[str] = None     # id of the first failing entry
    checked: int = 0                    # entries checked, inclusive of the failing one
