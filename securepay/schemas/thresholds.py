"""
Adaptive Threshold Configuration.
"""

from pydantic import BaseModel, Field

from securepay.schemas.transaction import TransactionType


class ThresholdConfig(BaseModel):
    """
    Layered decision-boundary configuration.

    Resolution order: default → per-type baseline (replaces) → per-country
    baseline (averaged in) → night-shift / weekend deltas (added).
    """
    default_threshold: float = 0.70
    by_type: dict[TransactionType, float] = Field(default_factory=dict)
    by_country: dict[str, float] = Field(default_factory=dict)
    night_shift_delta: float = 0.0
    weekend_delta: float = 0.0


DEFAULT_THRESHOLD_CONFIG = ThresholdConfig(
    default_threshold=0.70,
    by_type={
        TransactionType.CASH_OUT: 0.60,
        TransactionType.TRANSFER: 0.62,
        TransactionType.PAYMENT: 0.72,
        TransactionType.CASH_IN: 0.78,
        TransactionType.DEBIT: 0.74,
    },
    by_country={
        "US": 0.70,
        "IN": 0.68,
        "GB": 0.71,
        "EU": 0.72,
    },
    night_shift_delta=-0.05,
    weekend_delta=-0.03,
)
