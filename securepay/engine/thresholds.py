"""
Adaptive Threshold Resolver.

Computes the operative decision boundary for a transaction from a layered
configuration:

1. Start from the global default
2. Per-type baseline REPLACES the working value
3. Per-country baseline is AVERAGED with the working value
4. Night shift (hour < 6 or >= 22) adds night_shift_delta
5. Weekend (Saturday/Sunday) adds weekend_delta
6. Clamp to [0.35, 0.95]

Time uses local wall-clock semantics of the `now` passed in.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import structlog

from securepay.exceptions import InvalidEngineInput
from securepay.formatting import as_percent
from securepay.schemas.thresholds import ThresholdConfig
from securepay.schemas.transaction import TransactionRecord

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

THRESHOLD_FLOOR: float = 0.35
THRESHOLD_CEILING: float = 0.95
NIGHT_SHIFT_START_HOUR: int = 22
NIGHT_SHIFT_END_HOUR: int = 6
WEEKEND_DAYS: frozenset[int] = frozenset({5, 6})  # datetime.weekday(): Sat, Sun


def clamp_threshold(
    value: float,
    floor: float = THRESHOLD_FLOOR,
    ceiling: float = THRESHOLD_CEILING,
) -> float:
    return max(floor, min(ceiling, value))


def blend_thresholds(
    manual_threshold: float,
    resolved_threshold: float,
    floor: float = THRESHOLD_FLOOR,
    ceiling: float = THRESHOLD_CEILING,
) -> float:
    """
    Application policy: average the administrator's manual risk threshold
    with the resolver output, then clamp.
    """
    return clamp_threshold((manual_threshold + resolved_threshold) / 2, floor, ceiling)


@dataclass(frozen=True)
class ThresholdResolution:
    threshold: float
    notes: list[str] = field(default_factory=list)


class ThresholdResolver:
    """Resolve a context-sensitive decision boundary."""

    def __init__(
        self,
        floor: float = THRESHOLD_FLOOR,
        ceiling: float = THRESHOLD_CEILING,
    ):
        self.floor = floor
        self.ceiling = ceiling

    def resolve(
        self,
        transaction: TransactionRecord,
        config: ThresholdConfig,
        country: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ThresholdResolution:
        if config is None:
            raise InvalidEngineInput("Threshold config is required")

        now = now or datetime.now()
        notes: list[str] = []
        threshold = config.default_threshold

        type_threshold = config.by_type.get(transaction.type)
        if type_threshold is not None:
            threshold = type_threshold
            notes.append(f"Type baseline: {as_percent(type_threshold)}%")

        if country and country in config.by_country:
            threshold = (threshold + config.by_country[country]) / 2
            notes.append(f"Country adjustment: {country}")

        if now.hour < NIGHT_SHIFT_END_HOUR or now.hour >= NIGHT_SHIFT_START_HOUR:
            threshold += config.night_shift_delta
            notes.append("Night shift profile")

        if now.weekday() in WEEKEND_DAYS:
            threshold += config.weekend_delta
            notes.append("Weekend profile")

        threshold = clamp_threshold(threshold, self.floor, self.ceiling)

        logger.debug(
            "threshold_resolved",
            transaction_id=transaction.id,
            threshold=threshold,
            notes=notes,
        )
        return ThresholdResolution(threshold=threshold, notes=notes)
