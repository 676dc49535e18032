"""
Tamper-evident audit ledger.
"""

from securepay.audit.ledger import (
    GENESIS_HASH,
    AuditLedger,
    compute_entry_hash,
    format_ledger_csv,
    verify_chain,
)

__all__ = [
    "GENESIS_HASH",
    "AuditLedger",
    "compute_entry_hash",
    "format_ledger_csv",
    "verify_chain",
]
