"""
Analyst Feedback & Model Monitoring.

Analysts label scored transactions (confirmed fraud, false positive, needs
review). Labels feed a monitoring snapshot that estimates precision, the
false-positive rate and score drift over the recent scoring history.
"""

import asyncio
import secrets
import string
import time
from datetime import datetime, timezone
from typing import Optional, Sequence

import structlog

from securepay.formatting import as_percent_1dp
from securepay.schemas.feedback import (
    FeedbackItem,
    FeedbackLabel,
    MonitoringSnapshot,
    TypeBreakdown,
)
from securepay.schemas.prediction import ScoredTransaction, Verdict
from securepay.schemas.transaction import TransactionType
from securepay.storage.repository import SettingsRepository

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

DRIFT_RECENT_WINDOW: int = 15
DRIFT_BASELINE_WINDOW: int = 30

_ID_ALPHABET = string.ascii_uppercase + string.digits


def _feedback_id() -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(4))
    return f"FDB-{int(time.time() * 1000)}-{suffix}"


def _mean_probability(items: Sequence[ScoredTransaction], fallback: float) -> float:
    if not items:
        return fallback
    return sum(item.result.probability for item in items) / len(items)


def build_monitoring_snapshot(
    history: Sequence[ScoredTransaction],
    feedback: Sequence[FeedbackItem],
) -> MonitoringSnapshot:
    """
    Summarize label coverage and model quality.

    Args:
        history: Scored transactions, most recent first
        feedback: Analyst labels

    Drift compares the mean probability of the 15 most recent predictions
    with the 30 before them; an empty window uses the overall average.
    """
    total = len(history)
    labeled = len(feedback)

    confirmed = sum(1 for f in feedback if f.label == FeedbackLabel.CONFIRMED_FRAUD)
    false_positive = sum(1 for f in feedback if f.label == FeedbackLabel.FALSE_POSITIVE)
    needs_review = sum(1 for f in feedback if f.label == FeedbackLabel.NEEDS_REVIEW)

    predicted_fraud = sum(1 for h in history if h.result.prediction == Verdict.FRAUD)
    precision = confirmed / predicted_fraud if predicted_fraud else 0.0
    fp_rate = false_positive / predicted_fraud if predicted_fraud else 0.0

    average_risk = _mean_probability(history, 0.0)
    recent = history[:DRIFT_RECENT_WINDOW]
    baseline = history[DRIFT_RECENT_WINDOW:DRIFT_RECENT_WINDOW + DRIFT_BASELINE_WINDOW]
    drift = abs(
        _mean_probability(recent, average_risk) - _mean_probability(baseline, average_risk)
    )

    by_type: list[TypeBreakdown] = []
    for tx_type in TransactionType:
        ids = {h.transaction.id for h in history if h.transaction.type == tx_type}
        labels = [f for f in feedback if f.transaction_id in ids]
        by_type.append(TypeBreakdown(
            type=tx_type,
            total=sum(1 for h in history if h.transaction.type == tx_type),
            labeled=len(labels),
            confirmed_fraud=sum(1 for f in labels if f.label == FeedbackLabel.CONFIRMED_FRAUD),
            false_positive=sum(1 for f in labels if f.label == FeedbackLabel.FALSE_POSITIVE),
        ))

    return MonitoringSnapshot(
        total_predictions=total,
        labeled_count=labeled,
        label_coverage=as_percent_1dp(labeled / total if total else 0.0),
        confirmed_fraud=confirmed,
        false_positive=false_positive,
        needs_review=needs_review,
        precision_estimate=as_percent_1dp(precision),
        false_positive_rate=as_percent_1dp(fp_rate),
        average_risk=as_percent_1dp(average_risk),
        drift_score=as_percent_1dp(drift),
        by_type=by_type,
    )


class FeedbackService:
    """One label per transaction; relabeling replaces the previous label."""

    def __init__(self, repository: SettingsRepository):
        self._repo = repository
        self._lock = asyncio.Lock()

    async def list_feedback(self) -> list[FeedbackItem]:
        return await self._repo.get_feedback()

    async def get_for_transaction(self, transaction_id: str) -> Optional[FeedbackItem]:
        for item in await self._repo.get_feedback():
            if item.transaction_id == transaction_id:
                return item
        return None

    async def upsert(
        self,
        transaction_id: str,
        label: FeedbackLabel,
        prediction: Verdict,
        probability: float,
        analyst: str,
        timestamp: Optional[str] = None,
    ) -> FeedbackItem:
        """
        Create or replace the label for a transaction.

        An existing label keeps its id and position; a new one is prepended.
        """
        async with self._lock:
            items = await self._repo.get_feedback()
            current = next((i for i in items if i.transaction_id == transaction_id), None)

            item = FeedbackItem(
                id=current.id if current else _feedback_id(),
                transaction_id=transaction_id,
                label=label,
                prediction=prediction,
                probability=probability,
                analyst=analyst,
                timestamp=timestamp or datetime.now(timezone.utc).isoformat(),
            )

            if current:
                items = [item if i.transaction_id == transaction_id else i for i in items]
            else:
                items = [item, *items]
            await self._repo.save_feedback(items)

        logger.info(
            "feedback_recorded",
            feedback_id=item.id,
            transaction_id=transaction_id,
            label=label.value,
            updated=current is not None,
        )
        return item
