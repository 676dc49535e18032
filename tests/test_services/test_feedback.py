"""
Analyst feedback and monitoring snapshot tests.
"""

import pytest

from securepay.engine.scorer import RiskScorer
from securepay.schemas.feedback import FeedbackLabel
from securepay.schemas.prediction import ScoredTransaction, Verdict
from securepay.schemas.transaction import TransactionRecord, TransactionType
from securepay.services.feedback import (
    DRIFT_RECENT_WINDOW,
    FeedbackService,
    build_monitoring_snapshot,
)
from securepay.storage.repository import SettingsRepository


@pytest.fixture
def feedback_service(store) -> FeedbackService:
    return FeedbackService(SettingsRepository(store))


def _scored(tx: TransactionRecord, threshold: float = 0.65) -> ScoredTransaction:
    return ScoredTransaction(
        transaction=tx,
        result=RiskScorer().score(tx, threshold=threshold, rules=[]),
    )


class TestFeedbackUpsert:
    @pytest.mark.asyncio
    async def test_new_label_prepended(self, feedback_service):
        await feedback_service.upsert("TXN-1", FeedbackLabel.CONFIRMED_FRAUD, Verdict.FRAUD, 0.9, "alice")
        await feedback_service.upsert("TXN-2", FeedbackLabel.FALSE_POSITIVE, Verdict.FRAUD, 0.7, "alice")

        items = await feedback_service.list_feedback()
        assert [i.transaction_id for i in items] == ["TXN-2", "TXN-1"]
        assert items[0].id.startswith("FDB-")

    @pytest.mark.asyncio
    async def test_relabel_replaces_in_place(self, feedback_service):
        first = await feedback_service.upsert(
            "TXN-1", FeedbackLabel.NEEDS_REVIEW, Verdict.FRAUD, 0.9, "alice"
        )
        await feedback_service.upsert("TXN-2", FeedbackLabel.FALSE_POSITIVE, Verdict.FRAUD, 0.7, "bob")
        updated = await feedback_service.upsert(
            "TXN-1", FeedbackLabel.CONFIRMED_FRAUD, Verdict.FRAUD, 0.9, "bob"
        )

        items = await feedback_service.list_feedback()
        assert len(items) == 2
        assert updated.id == first.id
        assert items[1].label == FeedbackLabel.CONFIRMED_FRAUD
        assert items[1].analyst == "bob"

    @pytest.mark.asyncio
    async def test_get_for_transaction(self, feedback_service):
        await feedback_service.upsert("TXN-9", FeedbackLabel.FALSE_POSITIVE, Verdict.FRAUD, 0.7, "alice")
        assert (await feedback_service.get_for_transaction("TXN-9")).analyst == "alice"
        assert await feedback_service.get_for_transaction("TXN-0") is None


class TestMonitoringSnapshot:
    def test_empty(self):
        snapshot = build_monitoring_snapshot([], [])
        assert snapshot.total_predictions == 0
        assert snapshot.label_coverage == 0.0
        assert snapshot.precision_estimate == 0.0
        assert snapshot.drift_score == 0.0
        assert len(snapshot.by_type) == len(TransactionType)

    @pytest.mark.asyncio
    async def test_precision_and_coverage(self, feedback_service, drained_cash_out, safe_payment):
        fraud_a = _scored(drained_cash_out)
        fraud_b = _scored(drained_cash_out.model_copy(update={"id": "TXN-DRAIN-0002"}))
        clean = _scored(safe_payment)
        history = [fraud_a, fraud_b, clean]
        assert [h.result.prediction for h in history] == [Verdict.FRAUD, Verdict.FRAUD, Verdict.NOT_FRAUD]

        await feedback_service.upsert(
            fraud_a.transaction.id, FeedbackLabel.CONFIRMED_FRAUD, Verdict.FRAUD, 0.74, "alice"
        )
        await feedback_service.upsert(
            fraud_b.transaction.id, FeedbackLabel.FALSE_POSITIVE, Verdict.FRAUD, 0.74, "alice"
        )
        snapshot = build_monitoring_snapshot(history, await feedback_service.list_feedback())

        assert snapshot.labeled_count == 2
        assert snapshot.label_coverage == 66.7
        assert snapshot.precision_estimate == 50.0
        assert snapshot.false_positive_rate == 50.0

        cash_out = next(b for b in snapshot.by_type if b.type == TransactionType.CASH_OUT)
        assert cash_out.total == 2
        assert cash_out.labeled == 2
        assert cash_out.confirmed_fraud == 1

    def test_drift_compares_recent_with_baseline(self, drained_cash_out, safe_payment):
        recent = [_scored(drained_cash_out)] * DRIFT_RECENT_WINDOW
        older = [_scored(safe_payment)] * 30
        snapshot = build_monitoring_snapshot(recent + older, [])

        expected = recent[0].result.probability - older[0].result.probability
        assert snapshot.drift_score == pytest.approx(round(expected * 100, 1), abs=0.1)

    def test_no_baseline_means_no_drift(self, safe_payment):
        snapshot = build_monitoring_snapshot([_scored(safe_payment)] * 5, [])
        assert snapshot.drift_score == 0.0
