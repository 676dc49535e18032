"""
Heuristic Risk Scorer - converts a transaction into a fraud probability.

This is NOT a trained model. It is a fixed arithmetic heuristic:

    base = 0.35 × velocity + 0.40 × anomaly + 0.25 × behavior
    probability = clamp(base + heuristic bonuses + rule boost)

Verdict precedence (highest wins):
    forced prediction (force_fraud rule)
    > review escalation (force_review rule near the boundary)
    > threshold comparison

Every output is traceable: sub-scores, ranked reason codes and the rules
that matched are returned with the verdict.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

import structlog

from securepay.engine.rules import RuleEngine, RuleEvaluation, drain_ratio
from securepay.exceptions import InvalidEngineInput
from securepay.schemas.prediction import (
    DecisionSource,
    GroundingLink,
    PredictionResult,
    ReasonCode,
    RiskMetrics,
    Verdict,
)
from securepay.schemas.rules import RuleAction, RuleDefinition
from securepay.schemas.transaction import TransactionRecord, TransactionType

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

BASELINE_THRESHOLD: float = 0.65
AMOUNT_SCALE: float = 20_000.0

WEIGHT_VELOCITY: float = 0.35
WEIGHT_ANOMALY: float = 0.40
WEIGHT_BEHAVIOR: float = 0.25

BEHAVIOR_RISK: dict[TransactionType, float] = {
    TransactionType.CASH_OUT: 0.88,
    TransactionType.TRANSFER: 0.80,
    TransactionType.PAYMENT: 0.55,
    TransactionType.DEBIT: 0.50,
    TransactionType.CASH_IN: 0.28,
}

# Heuristic bonuses
LARGE_AMOUNT: float = 10_000.0
LARGE_AMOUNT_BONUS: float = 0.08
LARGE_AMOUNT_TYPES: frozenset[TransactionType] = frozenset({
    TransactionType.CASH_OUT,
    TransactionType.TRANSFER,
})
DRAIN_BONUS_RATIO: float = 0.9
DRAIN_BONUS: float = 0.06
MISMATCH_BONUS_RATIO: float = 0.7
MISMATCH_BONUS: float = 0.06

# Review escalation
REVIEW_FLOOR: float = 0.45
REVIEW_MARGIN: float = 0.08

MAX_REASON_CODES: int = 5

REFERENCE_SOURCES: list[GroundingLink] = [
    GroundingLink(
        title="FATF Guidance on Financial Transaction Monitoring",
        uri="https://www.fatf-gafi.org/en/publications/Methodsandtrends/money-laundering-terrorist-financing-risk-indicators.html",
    ),
    GroundingLink(
        title="Federal Reserve: Payments Fraud Insights",
        uri="https://www.federalreserve.gov/paymentsystems/payments-fraud.htm",
    ),
]


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass(frozen=True)
class SubScores:
    """Intermediate values of the heuristic, all in [0, 1]."""
    amount: float
    behavior: float
    origin_mismatch: float
    destination_mismatch: float
    anomaly: float
    drain_ratio: float
    destination_growth: float
    velocity: float


class RiskScorer:
    """
    Heuristic fraud scorer.

    Stateless. The rule engine is injected so callers can share one.
    """

    def __init__(
        self,
        rule_engine: Optional[RuleEngine] = None,
        baseline_threshold: float = BASELINE_THRESHOLD,
    ):
        self.rule_engine = rule_engine or RuleEngine()
        self.baseline_threshold = baseline_threshold

    def score(
        self,
        transaction: TransactionRecord,
        threshold: Optional[float] = None,
        rules: Iterable[RuleDefinition] = (),
        country: Optional[str] = None,
    ) -> PredictionResult:
        """
        Score a transaction.

        Args:
            transaction: Validated transaction record (finite, non-negative amount)
            threshold: Decision boundary; defaults to the model baseline
            rules: Override rules to evaluate
            country: Country for rule filters; falls back to transaction.country

        Returns:
            PredictionResult with verdict, probability, reasons and breakdown
        """
        if rules is None:
            raise InvalidEngineInput("Rule set is required (pass [] for no rules)")

        threshold = self.baseline_threshold if threshold is None else threshold
        sub = self.compute_sub_scores(transaction)

        # ── 1. Base probability ──────────────────────────────────────
        probability = (
            WEIGHT_VELOCITY * sub.velocity
            + WEIGHT_ANOMALY * sub.anomaly
            + WEIGHT_BEHAVIOR * sub.behavior
        )

        # ── 2. Heuristic bonuses ─────────────────────────────────────
        if transaction.amount >= LARGE_AMOUNT and transaction.type in LARGE_AMOUNT_TYPES:
            probability += LARGE_AMOUNT_BONUS
        if sub.drain_ratio >= DRAIN_BONUS_RATIO and transaction.type != TransactionType.CASH_IN:
            probability += DRAIN_BONUS
        if sub.origin_mismatch > MISMATCH_BONUS_RATIO or sub.destination_mismatch > MISMATCH_BONUS_RATIO:
            probability += MISMATCH_BONUS

        # ── 3. Rule overrides ────────────────────────────────────────
        evaluation = self.rule_engine.evaluate(
            transaction, rules, country or transaction.country
        )
        probability = _clamp01(probability + evaluation.score_boost)

        # ── 4. Verdict ───────────────────────────────────────────────
        prediction, source = self._decide(probability, threshold, evaluation)

        result = PredictionResult(
            prediction=prediction,
            probability=probability,
            reasoning=self._reasoning(sub),
            threshold_used=threshold,
            decision_source=source,
            reason_codes=self._reason_codes(transaction, sub, evaluation),
            matched_rules=evaluation.matches,
            risk_metrics=RiskMetrics(
                velocity=sub.velocity,
                anomaly=sub.anomaly,
                behavioral=sub.behavior,
            ),
            sources=list(REFERENCE_SOURCES),
        )

        logger.info(
            "transaction_scored",
            transaction_id=transaction.id,
            type=transaction.type.value,
            probability=round(probability, 4),
            threshold=threshold,
            prediction=prediction.value,
            decision_source=source.value,
            matched_rules=len(evaluation.matches),
        )
        return result

    @staticmethod
    def compute_sub_scores(transaction: TransactionRecord) -> SubScores:
        """Compute the independent sub-scores for a transaction."""
        amount = transaction.amount
        denominator = max(amount, 1.0)

        amount_score = _clamp01(amount / AMOUNT_SCALE)
        behavior_score = BEHAVIOR_RISK[transaction.type]

        expected_origin_delta = -amount if transaction.type == TransactionType.CASH_IN else amount
        origin_mismatch = _clamp01(
            abs(transaction.origin_delta - expected_origin_delta) / denominator
        )

        # Same expectation for every type, including CASH_IN
        expected_dest_delta = amount
        destination_mismatch = _clamp01(
            abs(transaction.dest_delta - expected_dest_delta) / denominator
        )

        anomaly = _clamp01((origin_mismatch + destination_mismatch + amount_score) / 3)

        drain = drain_ratio(transaction)
        if transaction.dest_balance_before > 0:
            destination_growth = _clamp01(
                transaction.dest_delta / max(transaction.dest_balance_before, 1.0)
            )
        else:
            destination_growth = _clamp01(transaction.dest_delta / denominator)

        velocity = _clamp01((drain + destination_growth + amount_score) / 3)

        return SubScores(
            amount=amount_score,
            behavior=behavior_score,
            origin_mismatch=origin_mismatch,
            destination_mismatch=destination_mismatch,
            anomaly=anomaly,
            drain_ratio=drain,
            destination_growth=destination_growth,
            velocity=velocity,
        )

    def _decide(
        self,
        probability: float,
        threshold: float,
        evaluation: RuleEvaluation,
    ) -> tuple[Verdict, DecisionSource]:
        prediction = Verdict.FRAUD if probability >= threshold else Verdict.NOT_FRAUD
        source = (
            DecisionSource.ADAPTIVE_THRESHOLD
            if threshold != self.baseline_threshold
            else DecisionSource.MODEL
        )

        if evaluation.review_required and probability >= max(REVIEW_FLOOR, threshold - REVIEW_MARGIN):
            prediction = Verdict.FRAUD
            source = DecisionSource.RULE

        if evaluation.forced_prediction is not None:
            prediction = evaluation.forced_prediction
            source = DecisionSource.RULE

        return prediction, source

    @staticmethod
    def _reasoning(sub: SubScores) -> str:
        parts: list[str] = []
        if sub.amount > 0.7:
            parts.append("high-value amount")
        if sub.origin_mismatch > 0.55 or sub.destination_mismatch > 0.55:
            parts.append("balance movement mismatch")
        if sub.behavior > 0.75:
            parts.append("transaction type with elevated historical risk")
        if sub.drain_ratio > 0.85:
            parts.append("rapid depletion of origin account")

        if not parts:
            return (
                "No major anomaly pattern detected in amount, balance movement, "
                "or transaction type."
            )
        return f"Risk elevated due to {', '.join(parts)}."

    @staticmethod
    def _reason_codes(
        transaction: TransactionRecord,
        sub: SubScores,
        evaluation: RuleEvaluation,
    ) -> list[ReasonCode]:
        """Sub-score and rule reasons, ranked by score, top five."""
        reasons = [
            ReasonCode(
                code="velocity",
                title="Velocity Shift",
                score=sub.velocity,
                detail="Rapid fund movement relative to account baselines.",
            ),
            ReasonCode(
                code="anomaly",
                title="Balance Anomaly",
                score=sub.anomaly,
                detail="Observed balance changes diverge from expected transaction mechanics.",
            ),
            ReasonCode(
                code="behavior",
                title="Behavioral Pattern",
                score=sub.behavior,
                detail=f"Historical risk profile for {transaction.type.value} transactions.",
            ),
            ReasonCode(
                code="amount",
                title="Amount Stress",
                score=sub.amount,
                detail="Transaction size compared to fraud-prone value ranges.",
            ),
        ]

        for match in evaluation.matches:
            score = (
                min(1.0, 0.6 + match.boost_applied)
                if match.action == RuleAction.BOOST_SCORE
                else 0.95
            )
            reasons.append(ReasonCode(
                code=f"rule_{match.rule_id}",
                title=f"Rule Matched: {match.rule_name}",
                score=score,
                detail=match.reason,
            ))

        # sorted() is stable, so ties keep sub-scores ahead of rules
        ranked = sorted(reasons, key=lambda r: r.score, reverse=True)
        return ranked[:MAX_REASON_CODES]
