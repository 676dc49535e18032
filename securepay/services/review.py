"""
Review Service - the application layer over the decision engine.

Wires the pure engines (threshold resolver, rule engine, scorer) to the
persisted rules / threshold config / runtime settings and records every
consequential action in the audit ledger.

Scoring flow:
    1. Resolve the adaptive threshold for the transaction
    2. Blend it with the manual risk threshold
    3. Score with the active rules
    4. Record in history and the ledger
    5. Realtime alerts and auto-lock, when enabled

Only steps 1-3 can fail a score. Alert delivery is best effort.

Usage:
    service = create_review_service(InMemoryKeyValueStore())
    outcome = await service.score(transaction, actor="analyst-1")
"""

from datetime import datetime
from typing import Callable, Optional, Sequence

import structlog

from securepay.audit.ledger import AuditLedger, format_ledger_csv
from securepay.config import Settings, settings as default_settings
from securepay.engine.scorer import RiskScorer
from securepay.engine.thresholds import ThresholdResolution, ThresholdResolver, blend_thresholds
from securepay.exceptions import UnknownIntegrationTarget, UnknownTransaction
from securepay.formatting import as_percent
from securepay.schemas.audit import AuditCategory, AuditLogEntry, AuditStatus, ChainVerification
from securepay.schemas.feedback import FeedbackItem, FeedbackLabel, MonitoringSnapshot
from securepay.schemas.integrations import DispatchResult, IntegrationTarget
from securepay.schemas.prediction import (
    BatchReport,
    BatchRow,
    PredictionResult,
    ScoredTransaction,
    ScoringOutcome,
    Verdict,
)
from securepay.schemas.rules import RuleDefinition
from securepay.schemas.session import SessionEvent, UserRole
from securepay.schemas.settings import RuntimeSettings
from securepay.schemas.thresholds import ThresholdConfig
from securepay.schemas.transaction import TransactionRecord
from securepay.services.batch import ParsedRow, parse_batch_csv
from securepay.services.feedback import FeedbackService, build_monitoring_snapshot
from securepay.services.integrations import IntegrationDispatcher
from securepay.services.sessions import SessionTracker
from securepay.storage.base import KeyValueStore
from securepay.storage.repository import SettingsRepository

logger = structlog.get_logger(__name__)


class ReviewService:
    """
    Score transactions and manage the state around them.

    History is process-local and bounded (most recent first). Everything
    else lives in the key-value store.
    """

    def __init__(
        self,
        repository: SettingsRepository,
        ledger: AuditLedger,
        scorer: Optional[RiskScorer] = None,
        resolver: Optional[ThresholdResolver] = None,
        dispatcher: Optional[IntegrationDispatcher] = None,
        feedback: Optional[FeedbackService] = None,
        sessions: Optional[SessionTracker] = None,
        config: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config or default_settings
        self.repository = repository
        self.ledger = ledger
        self.scorer = scorer or RiskScorer(baseline_threshold=self.config.baseline_threshold)
        self.resolver = resolver or ThresholdResolver(
            floor=self.config.threshold_floor,
            ceiling=self.config.threshold_ceiling,
        )
        self.dispatcher = dispatcher or IntegrationDispatcher()
        self.feedback = feedback or FeedbackService(repository)
        self.sessions = sessions or SessionTracker()
        self._clock = clock or datetime.now
        self._history: list[ScoredTransaction] = []

    # =========================================================================
    # SETTINGS
    # =========================================================================

    def default_runtime_settings(self) -> RuntimeSettings:
        return RuntimeSettings(
            risk_threshold=self.config.manual_risk_threshold,
            realtime_alerts=self.config.realtime_alerts,
            auto_lock=self.config.auto_lock,
        )

    async def runtime_settings(self) -> RuntimeSettings:
        return await self.repository.get_runtime_settings(self.default_runtime_settings())

    async def rules(self) -> list[RuleDefinition]:
        return await self.repository.get_rules()

    async def threshold_config(self) -> ThresholdConfig:
        return await self.repository.get_threshold_config()

    async def integration_targets(self) -> list[IntegrationTarget]:
        return await self.repository.get_integration_targets()

    async def save_rules(
        self,
        rules: list[RuleDefinition],
        actor: Optional[str] = None,
        address: Optional[str] = None,
    ) -> list[RuleDefinition]:
        await self.repository.save_rules(rules)
        active = sum(1 for r in rules if r.enabled)
        await self.ledger.append(
            "Rules Updated",
            AuditCategory.RULES,
            f"Rule set updated. Active rules: {active}",
            status=AuditStatus.WARNING,
            actor=actor,
            address=address,
        )
        return rules

    async def save_threshold_config(
        self,
        config: ThresholdConfig,
        actor: Optional[str] = None,
        address: Optional[str] = None,
    ) -> ThresholdConfig:
        await self.repository.save_threshold_config(config)
        await self.ledger.append(
            "Settings Saved",
            AuditCategory.SYSTEM,
            f"Adaptive thresholds saved. Default threshold {as_percent(config.default_threshold)}%.",
            actor=actor,
            address=address,
        )
        return config

    async def save_integration_targets(
        self,
        targets: list[IntegrationTarget],
        actor: Optional[str] = None,
        address: Optional[str] = None,
    ) -> list[IntegrationTarget]:
        await self.repository.save_integration_targets(targets)
        await self.ledger.append(
            "Settings Saved",
            AuditCategory.SYSTEM,
            f"Integration targets saved. Integrations: {len(targets)}.",
            actor=actor,
            address=address,
        )
        return targets

    async def save_runtime_settings(
        self,
        runtime: RuntimeSettings,
        actor: Optional[str] = None,
        address: Optional[str] = None,
    ) -> RuntimeSettings:
        await self.repository.save_runtime_settings(runtime)
        targets = await self.integration_targets()
        await self.ledger.append(
            "Settings Saved",
            AuditCategory.SYSTEM,
            f"Risk threshold {as_percent(runtime.risk_threshold)}%. Integrations: {len(targets)}.",
            actor=actor,
            address=address,
        )
        return runtime

    # =========================================================================
    # SCORING
    # =========================================================================

    async def resolve_threshold(
        self,
        transaction: TransactionRecord,
        country: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ThresholdResolution:
        config = await self.threshold_config()
        return self.resolver.resolve(
            transaction,
            config,
            country or transaction.country,
            now or self._clock(),
        )

    async def score(
        self,
        transaction: TransactionRecord,
        actor: Optional[str] = None,
        address: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ScoringOutcome:
        """
        Score one transaction interactively.

        Raises whatever the engine raised, after recording a
        `Scoring Error` ledger entry. Nothing is added to history in
        that case.
        """
        try:
            runtime, resolution, threshold, result = await self._evaluate(transaction, now)
        except Exception as e:
            logger.error("scoring_failed", transaction_id=transaction.id, error=str(e))
            await self.ledger.append(
                "Scoring Error",
                AuditCategory.MODEL,
                str(e) or "Unknown scoring error",
                status=AuditStatus.FAILED,
                actor=actor,
                address=address,
            )
            raise

        self._push_history(
            [ScoredTransaction(transaction=transaction, result=result)],
            self.config.history_limit,
        )
        await self.ledger.append(
            "Transaction Scored",
            AuditCategory.MODEL,
            (
                f"{transaction.id} -> {result.prediction.value} "
                f"({as_percent(result.probability)}%), threshold {as_percent(threshold)}%"
            ),
            status=AuditStatus.WARNING if result.is_fraud else AuditStatus.SUCCESS,
            actor=actor,
            address=address,
        )

        dispatches: list[DispatchResult] = []
        if runtime.realtime_alerts and result.is_fraud:
            dispatches = await self._dispatch_alerts(transaction, result, actor, address)

        auto_lock = (
            runtime.auto_lock
            and result.is_fraud
            and result.probability >= self.config.auto_lock_probability
        )
        if auto_lock:
            await self.ledger.append(
                "Auto-Lock Triggered",
                AuditCategory.RISK,
                (
                    f"Entity lock requested for transaction {transaction.id} "
                    f"after {as_percent(result.probability)}% risk score."
                ),
                status=AuditStatus.WARNING,
                actor=actor,
                address=address,
            )
            logger.warning(
                "auto_lock_triggered",
                transaction_id=transaction.id,
                probability=round(result.probability, 4),
            )

        return ScoringOutcome(
            transaction=transaction,
            result=result,
            resolved_threshold=resolution.threshold,
            threshold_notes=resolution.notes,
            dispatches=dispatches,
            auto_lock_requested=auto_lock,
        )

    async def _evaluate(
        self,
        transaction: TransactionRecord,
        now: Optional[datetime],
    ) -> tuple[RuntimeSettings, ThresholdResolution, float, PredictionResult]:
        """Load settings and run the engines. No side effects."""
        runtime = await self.runtime_settings()
        rules = await self.rules()
        resolution = await self.resolve_threshold(transaction, now=now)
        threshold = blend_thresholds(
            runtime.risk_threshold,
            resolution.threshold,
            self.config.threshold_floor,
            self.config.threshold_ceiling,
        )
        result = self.scorer.score(
            transaction,
            threshold=threshold,
            rules=rules,
            country=transaction.country,
        )
        return runtime, resolution, threshold, result

    async def _dispatch_alerts(
        self,
        transaction: TransactionRecord,
        result: PredictionResult,
        actor: Optional[str],
        address: Optional[str],
    ) -> list[DispatchResult]:
        """Best effort: a failing dispatcher is logged, the score stands."""
        targets = await self.integration_targets()
        try:
            dispatches = await self.dispatcher.dispatch_high_risk_alert(transaction, result, targets)
        except Exception as e:
            logger.error("alert_dispatch_failed", transaction_id=transaction.id, error=str(e))
            await self.ledger.append(
                "Integration Dispatch",
                AuditCategory.INTEGRATION,
                f"High-risk alert for {transaction.id} not sent: {e}",
                status=AuditStatus.FAILED,
                actor=actor,
                address=address,
            )
            return []

        for dispatch in dispatches:
            await self.ledger.append(
                "Integration Dispatch",
                AuditCategory.INTEGRATION,
                f"{dispatch.target_name}: {dispatch.message}",
                status=AuditStatus.SUCCESS if dispatch.ok else AuditStatus.FAILED,
                actor=actor,
                address=address,
            )
        return dispatches

    async def score_batch(
        self,
        transactions: Sequence[TransactionRecord],
        default_country: Optional[str] = None,
        actor: Optional[str] = None,
        address: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> BatchReport:
        """Score many transactions against the adaptive threshold only."""
        parsed = [ParsedRow(row=i + 1, transaction=tx) for i, tx in enumerate(transactions)]
        return await self._score_rows(parsed, default_country, actor, address, now)

    async def score_batch_csv(
        self,
        text: str,
        default_country: Optional[str] = None,
        actor: Optional[str] = None,
        address: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> BatchReport:
        country = default_country or self.config.batch_default_country
        parsed = parse_batch_csv(text, default_country=country)
        return await self._score_rows(parsed, country, actor, address, now)

    async def _score_rows(
        self,
        parsed: Sequence[ParsedRow],
        default_country: Optional[str],
        actor: Optional[str],
        address: Optional[str],
        now: Optional[datetime],
    ) -> BatchReport:
        default_country = default_country or self.config.batch_default_country
        rules = await self.rules()
        config = await self.threshold_config()
        now = now or self._clock()

        rows: list[BatchRow] = []
        scored: list[ScoredTransaction] = []

        for item in parsed:
            if item.transaction is None:
                rows.append(BatchRow(row=item.row, error=item.error or "Row parse error"))
                continue

            transaction = item.transaction
            if not transaction.country:
                transaction = transaction.model_copy(update={"country": default_country})

            try:
                resolution = self.resolver.resolve(transaction, config, transaction.country, now)
                result = self.scorer.score(
                    transaction,
                    threshold=resolution.threshold,
                    rules=rules,
                    country=transaction.country,
                )
            except Exception as e:
                logger.warning("batch_row_failed", row=item.row, error=str(e))
                rows.append(BatchRow(row=item.row, transaction_id=transaction.id, error=str(e)))
                continue

            rows.append(BatchRow(
                row=item.row,
                transaction_id=transaction.id,
                result=result,
                threshold=resolution.threshold,
            ))
            scored.append(ScoredTransaction(transaction=transaction, result=result))

        if scored:
            self._push_history(scored, self.config.batch_history_limit)
            await self.ledger.append(
                "Batch Scoring Completed",
                AuditCategory.MODEL,
                f"{len(scored)} transactions scored in batch mode.",
                actor=actor,
                address=address,
            )

        report = BatchReport(
            rows=rows,
            total=len(rows),
            scored=len(scored),
            errors=sum(1 for r in rows if r.error),
            frauds=sum(1 for s in scored if s.result.prediction == Verdict.FRAUD),
        )
        logger.info(
            "batch_scored",
            total=report.total,
            scored=report.scored,
            errors=report.errors,
            frauds=report.frauds,
        )
        return report

    def _push_history(self, items: list[ScoredTransaction], limit: int) -> None:
        """Prepend items (kept in their given order) and evict the oldest."""
        self._history = [*items, *self._history][:limit]

    def history(self, limit: Optional[int] = None) -> list[ScoredTransaction]:
        """Scored transactions, most recent first."""
        items = list(self._history)
        return items[:limit] if limit is not None else items

    def find_scored(self, transaction_id: str) -> Optional[ScoredTransaction]:
        return next((h for h in self._history if h.transaction.id == transaction_id), None)

    # =========================================================================
    # SESSIONS, FEEDBACK, INTEGRATIONS
    # =========================================================================

    async def record_session(
        self,
        actor: str,
        event: SessionEvent = SessionEvent.LOGIN,
        role: UserRole = UserRole.ANALYST,
        address: Optional[str] = None,
    ) -> AuditLogEntry:
        if event == SessionEvent.LOGIN:
            self.sessions.login(actor, role)
            action, details = "User Login", f"{actor} signed in with role {role.value}"
        else:
            self.sessions.logout()
            action, details = "User Logout", f"{actor} terminated session"

        return await self.ledger.append(
            action,
            AuditCategory.AUTH,
            details,
            actor=actor,
            address=address,
        )

    async def submit_feedback(
        self,
        transaction_id: str,
        label: FeedbackLabel,
        actor: Optional[str] = None,
        address: Optional[str] = None,
    ) -> FeedbackItem:
        scored = self.find_scored(transaction_id)
        if scored is None:
            raise UnknownTransaction(transaction_id)

        analyst = actor or self.sessions.current_actor() or "system"
        item = await self.feedback.upsert(
            transaction_id=transaction_id,
            label=label,
            prediction=scored.result.prediction,
            probability=scored.result.probability,
            analyst=analyst,
        )
        await self.ledger.append(
            "Analyst Feedback Submitted",
            AuditCategory.MODEL,
            f"{analyst} labeled {transaction_id} as {label.value}",
            actor=analyst,
            address=address,
        )
        return item

    async def monitoring_snapshot(self) -> MonitoringSnapshot:
        return build_monitoring_snapshot(self._history, await self.feedback.list_feedback())

    async def send_test_alert(
        self,
        target_id: str,
        actor: Optional[str] = None,
        address: Optional[str] = None,
    ) -> DispatchResult:
        target = await self.repository.get_integration_target(target_id)
        if target is None:
            raise UnknownIntegrationTarget(target_id)

        result = await self.dispatcher.send_test_alert(target)
        await self.ledger.append(
            "Integration Test Alert",
            AuditCategory.INTEGRATION,
            f"{target.name}: {result.message}",
            status=AuditStatus.SUCCESS if result.ok else AuditStatus.FAILED,
            actor=actor,
            address=address,
        )
        return result

    # =========================================================================
    # AUDIT LEDGER
    # =========================================================================

    async def append_log(
        self,
        action: str,
        category: AuditCategory,
        details: str,
        status: AuditStatus = AuditStatus.SUCCESS,
        actor: Optional[str] = None,
        address: Optional[str] = None,
    ) -> AuditLogEntry:
        return await self.ledger.append(action, category, details, status, actor, address)

    async def audit_log(self) -> list[AuditLogEntry]:
        return await self.ledger.list_entries()

    async def verify_ledger(
        self,
        entries: Optional[Sequence[AuditLogEntry]] = None,
    ) -> ChainVerification:
        return await self.ledger.verify(entries)

    async def export_audit_csv(self) -> str:
        return format_ledger_csv(await self.ledger.list_entries())


def create_review_service(
    store: KeyValueStore,
    config: Optional[Settings] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> ReviewService:
    """Build a ReviewService with its collaborators over one store."""
    sessions = SessionTracker()
    repository = SettingsRepository(store)
    ledger = AuditLedger(store, identity=sessions.current_actor)
    return ReviewService(
        repository=repository,
        ledger=ledger,
        sessions=sessions,
        config=config,
        clock=clock,
    )
