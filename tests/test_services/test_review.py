"""
ReviewService tests: scoring flow, history, ledger side effects.
"""

import pytest

from securepay.exceptions import UnknownIntegrationTarget, UnknownTransaction
from securepay.schemas.audit import AuditCategory, AuditStatus
from securepay.schemas.feedback import FeedbackLabel
from securepay.schemas.integrations import IntegrationTarget, IntegrationType
from securepay.schemas.prediction import DecisionSource, Verdict
from securepay.schemas.rules import RuleAction, RuleDefinition
from securepay.schemas.session import SessionEvent, UserRole
from securepay.schemas.settings import RuntimeSettings
from securepay.schemas.thresholds import ThresholdConfig
from securepay.schemas.transaction import TransactionRecord, TransactionType
from securepay.services.batch import TEMPLATE
from securepay.services.review import create_review_service
from securepay.storage.base import InMemoryKeyValueStore

ENABLED_TARGET = IntegrationTarget(
    id="int-hook",
    name="Ops Webhook",
    type=IntegrationType.WEBHOOK,
    endpoint="https://example.com/hook",
    enabled=True,
)


async def _actions(service) -> list[str]:
    return [e.action for e in await service.audit_log()]


class TestScoring:
    @pytest.mark.asyncio
    async def test_safe_payment(self, review_service, safe_payment):
        outcome = await review_service.score(safe_payment, actor="alice", address="10.0.0.1")

        # PAYMENT 0.72 averaged with IN 0.68, then blended with the manual 0.70
        assert outcome.resolved_threshold == pytest.approx(0.70)
        assert outcome.result.threshold_used == pytest.approx(0.70)
        assert outcome.result.prediction == Verdict.NOT_FRAUD
        assert outcome.result.decision_source == DecisionSource.ADAPTIVE_THRESHOLD
        assert outcome.threshold_notes == ["Type baseline: 72%", "Country adjustment: IN"]
        assert outcome.dispatches == []
        assert outcome.auto_lock_requested is False

        latest = (await review_service.audit_log())[0]
        assert latest.action == "Transaction Scored"
        assert latest.category == AuditCategory.MODEL
        assert latest.status == AuditStatus.SUCCESS
        assert latest.details == "TXN-SAFE-0001 -> Not Fraud (28%), threshold 70%"
        assert latest.actor == "alice"
        assert latest.address == "10.0.0.1"

    @pytest.mark.asyncio
    async def test_fraud_logged_as_warning(self, review_service, drained_cash_out):
        outcome = await review_service.score(drained_cash_out)

        # CASH_OUT 0.60 averaged with US 0.70 = 0.65, blended with 0.70
        assert outcome.result.threshold_used == pytest.approx(0.675)
        assert outcome.result.prediction == Verdict.FRAUD
        latest = (await review_service.audit_log())[0]
        assert latest.status == AuditStatus.WARNING
        assert latest.actor == "system"

    @pytest.mark.asyncio
    async def test_history_newest_first_and_bounded(self, store, safe_payment):
        service = create_review_service(store)
        service.config = service.config.model_copy(update={"history_limit": 3})
        for i in range(5):
            await service.score(safe_payment.model_copy(update={"id": f"TXN-{i}"}))

        assert [h.transaction.id for h in service.history()] == ["TXN-4", "TXN-3", "TXN-2"]
        assert [h.transaction.id for h in service.history(limit=1)] == ["TXN-4"]
        assert service.find_scored("TXN-0") is None

    @pytest.mark.asyncio
    async def test_realtime_alert_dispatch(self, review_service, drained_cash_out):
        await review_service.save_integration_targets([ENABLED_TARGET])
        outcome = await review_service.score(drained_cash_out)

        assert [d.target_id for d in outcome.dispatches] == ["int-hook"]
        entries = await review_service.audit_log()
        assert entries[0].action == "Integration Dispatch"
        assert entries[0].category == AuditCategory.INTEGRATION
        assert entries[0].details.startswith("Ops Webhook: ")

    @pytest.mark.asyncio
    async def test_realtime_alerts_disabled(self, review_service, drained_cash_out):
        await review_service.save_integration_targets([ENABLED_TARGET])
        await review_service.save_runtime_settings(RuntimeSettings(realtime_alerts=False))
        outcome = await review_service.score(drained_cash_out)
        assert outcome.dispatches == []

    @pytest.mark.asyncio
    async def test_auto_lock(self, review_service, drained_cash_out):
        await review_service.save_runtime_settings(RuntimeSettings(auto_lock=True))
        await review_service.save_rules([RuleDefinition(
            id="max", name="Max Boost", action=RuleAction.BOOST_SCORE, boost=1.0,
        )])
        outcome = await review_service.score(drained_cash_out)

        assert outcome.result.probability == 1.0
        assert outcome.auto_lock_requested is True
        latest = (await review_service.audit_log())[0]
        assert latest.action == "Auto-Lock Triggered"
        assert latest.category == AuditCategory.RISK
        assert latest.details == (
            "Entity lock requested for transaction TXN-DRAIN-0001 after 100% risk score."
        )

    @pytest.mark.asyncio
    async def test_auto_lock_needs_high_probability(self, review_service, drained_cash_out):
        await review_service.save_runtime_settings(RuntimeSettings(auto_lock=True))
        outcome = await review_service.score(drained_cash_out)
        assert outcome.result.is_fraud
        assert outcome.auto_lock_requested is False

    @pytest.mark.asyncio
    async def test_scoring_error_logged_and_raised(self, review_service, safe_payment):
        def broken(*args, **kwargs):
            raise RuntimeError("scorer exploded")

        review_service.scorer.score = broken
        with pytest.raises(RuntimeError):
            await review_service.score(safe_payment)

        latest = (await review_service.audit_log())[0]
        assert latest.action == "Scoring Error"
        assert latest.status == AuditStatus.FAILED
        assert latest.details == "scorer exploded"
        assert review_service.history() == []
        assert "Transaction Scored" not in await _actions(review_service)

    @pytest.mark.asyncio
    async def test_failing_dispatcher_keeps_score(self, review_service, drained_cash_out):
        async def unreachable(*args, **kwargs):
            raise ConnectionError("relay down")

        await review_service.save_integration_targets([ENABLED_TARGET])
        review_service.dispatcher.dispatch_high_risk_alert = unreachable
        outcome = await review_service.score(drained_cash_out)

        assert outcome.result.prediction == Verdict.FRAUD
        assert outcome.dispatches == []
        assert [h.transaction.id for h in review_service.history()] == ["TXN-DRAIN-0001"]

        entries = await review_service.audit_log()
        assert entries[0].action == "Integration Dispatch"
        assert entries[0].status == AuditStatus.FAILED
        assert entries[0].details == "High-risk alert for TXN-DRAIN-0001 not sent: relay down"
        assert entries[1].action == "Transaction Scored"
        assert "Scoring Error" not in [e.action for e in entries]

    @pytest.mark.asyncio
    async def test_custom_threshold_config_used(self, review_service, safe_payment):
        await review_service.save_threshold_config(
            ThresholdConfig(by_type={TransactionType.PAYMENT: 0.40})
        )
        resolution = await review_service.resolve_threshold(safe_payment, country="ZZ")
        assert resolution.threshold == pytest.approx(0.40)

        latest = (await review_service.audit_log())[0]
        assert latest.details == "Adaptive thresholds saved. Default threshold 70%."


class TestBatchScoring:
    @pytest.mark.asyncio
    async def test_batch_uses_adaptive_threshold_only(self, review_service, safe_payment):
        report = await review_service.score_batch([safe_payment])

        # PAYMENT 0.72 averaged with IN 0.68; no manual blend
        assert report.rows[0].threshold == pytest.approx(0.70)
        assert report.total == 1
        assert report.scored == 1
        assert report.rows[0].row == 1

    @pytest.mark.asyncio
    async def test_missing_country_defaults(self, review_service):
        tx = TransactionRecord(
            amount=24000,
            type=TransactionType.TRANSFER,
            origin_balance_before=25000,
            origin_balance_after=800,
            dest_balance_before=3000,
            dest_balance_after=26200,
        )
        report = await review_service.score_batch([tx], default_country="GB")
        # TRANSFER 0.62 averaged with GB 0.71
        assert report.rows[0].threshold == pytest.approx(0.665)

    @pytest.mark.asyncio
    async def test_csv_batch(self, review_service):
        report = await review_service.score_batch_csv(TEMPLATE + "\nx,PAYMENT,1,1,1,1")

        assert report.total == 4
        assert report.scored == 3
        assert report.errors == 1
        assert report.rows[3].error == "Invalid number: x"
        assert len(review_service.history()) == 3

        latest = (await review_service.audit_log())[0]
        assert latest.action == "Batch Scoring Completed"
        assert latest.details == "3 transactions scored in batch mode."

    @pytest.mark.asyncio
    async def test_batch_history_keeps_row_order(self, review_service):
        await review_service.score_batch_csv(TEMPLATE)
        types = [h.transaction.type for h in review_service.history()]
        assert types == [TransactionType.CASH_OUT, TransactionType.PAYMENT, TransactionType.TRANSFER]

    @pytest.mark.asyncio
    async def test_all_rows_invalid_writes_no_ledger_entry(self, review_service):
        report = await review_service.score_batch_csv("amount\n1")
        assert report.scored == 0
        assert report.errors == 1
        assert "Batch Scoring Completed" not in await _actions(review_service)


class TestSettingsAndSessions:
    @pytest.mark.asyncio
    async def test_default_runtime_settings(self, review_service):
        runtime = await review_service.runtime_settings()
        assert runtime.risk_threshold == review_service.config.manual_risk_threshold
        assert runtime.realtime_alerts is True

    @pytest.mark.asyncio
    async def test_save_runtime_settings_logged(self, review_service):
        await review_service.save_runtime_settings(RuntimeSettings(risk_threshold=0.55))
        latest = (await review_service.audit_log())[0]
        assert latest.action == "Settings Saved"
        assert latest.details == "Risk threshold 55%. Integrations: 2."
        assert (await review_service.runtime_settings()).risk_threshold == 0.55

    @pytest.mark.asyncio
    async def test_save_rules_logged(self, review_service):
        rules = await review_service.rules()
        rules[0] = rules[0].model_copy(update={"enabled": False})
        await review_service.save_rules(rules)

        latest = (await review_service.audit_log())[0]
        assert latest.action == "Rules Updated"
        assert latest.status == AuditStatus.WARNING
        assert latest.details == "Rule set updated. Active rules: 3"

    @pytest.mark.asyncio
    async def test_session_attribution(self, review_service, safe_payment):
        await review_service.record_session("alice", SessionEvent.LOGIN, UserRole.ADMIN)
        await review_service.score(safe_payment)
        entries = await review_service.audit_log()

        assert entries[0].actor == "alice"
        assert entries[1].action == "User Login"
        assert entries[1].details == "alice signed in with role admin"

        await review_service.record_session("alice", SessionEvent.LOGOUT)
        assert review_service.sessions.current_actor() is None
        assert (await review_service.audit_log())[0].details == "alice terminated session"


class TestFeedbackAndIntegrations:
    @pytest.mark.asyncio
    async def test_feedback_requires_scored_transaction(self, review_service):
        with pytest.raises(UnknownTransaction):
            await review_service.submit_feedback("TXN-NOPE", FeedbackLabel.CONFIRMED_FRAUD)

    @pytest.mark.asyncio
    async def test_feedback_recorded(self, review_service, drained_cash_out):
        outcome = await review_service.score(drained_cash_out)
        item = await review_service.submit_feedback(
            drained_cash_out.id, FeedbackLabel.CONFIRMED_FRAUD, actor="bob"
        )

        assert item.prediction == Verdict.FRAUD
        assert item.probability == outcome.result.probability
        assert item.analyst == "bob"
        latest = (await review_service.audit_log())[0]
        assert latest.details == "bob labeled TXN-DRAIN-0001 as confirmed_fraud"

        snapshot = await review_service.monitoring_snapshot()
        assert snapshot.labeled_count == 1
        assert snapshot.precision_estimate == 100.0

    @pytest.mark.asyncio
    async def test_unknown_integration_target(self, review_service):
        with pytest.raises(UnknownIntegrationTarget):
            await review_service.send_test_alert("int-missing")

    @pytest.mark.asyncio
    async def test_test_alert_logged(self, review_service):
        result = await review_service.send_test_alert("int-slack-soc")
        latest = (await review_service.audit_log())[0]
        assert latest.action == "Integration Test Alert"
        assert latest.status == (AuditStatus.SUCCESS if result.ok else AuditStatus.FAILED)


class TestLedgerAccess:
    @pytest.mark.asyncio
    async def test_verify_and_export(self, review_service, safe_payment):
        await review_service.score(safe_payment)
        await review_service.append_log("Case Opened", AuditCategory.CASE, "case 7")

        verification = await review_service.verify_ledger()
        assert verification.is_valid
        assert verification.checked == 3

        text = await review_service.export_audit_csv()
        assert len(text.split("\n")) == 4

    @pytest.mark.asyncio
    async def test_services_share_store(self, safe_payment):
        """A second service over the same store sees persisted settings and ledger."""
        store = InMemoryKeyValueStore()
        first = create_review_service(store)
        await first.save_runtime_settings(RuntimeSettings(risk_threshold=0.5))

        second = create_review_service(store)
        assert (await second.runtime_settings()).risk_threshold == 0.5
        assert len(await second.audit_log()) == 2
