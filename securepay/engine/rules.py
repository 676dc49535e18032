"""
Rule Engine - evaluates administrator override rules against a transaction.

Rules are evaluated in input order. Effects accumulate:
- boost_score: adds the rule's boost (or its severity default), cumulative
- force_fraud: forces the verdict to Fraud (last match wins)
- force_review: flags the transaction for review escalation

Every match is recorded, whatever its action.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

import structlog

from securepay.exceptions import InvalidEngineInput
from securepay.formatting import as_percent, format_number
from securepay.schemas.prediction import Verdict
from securepay.schemas.rules import (
    ANY,
    RuleAction,
    RuleDefinition,
    RuleMatch,
    RuleSeverity,
)
from securepay.schemas.transaction import TransactionRecord, TransactionType

logger = structlog.get_logger(__name__)


DEFAULT_RULES: list[RuleDefinition] = [
    RuleDefinition(
        id="rule-cashout-large",
        name="Large Cash-Out Burst",
        enabled=True,
        severity=RuleSeverity.CRITICAL,
        action=RuleAction.BOOST_SCORE,
        boost=0.12,
        min_amount=10000,
        transaction_type=TransactionType.CASH_OUT,
        country=ANY,
    ),
    RuleDefinition(
        id="rule-transfer-highrisk-country",
        name="High-Risk Corridor Transfer",
        enabled=True,
        severity=RuleSeverity.HIGH,
        action=RuleAction.BOOST_SCORE,
        boost=0.10,
        min_amount=3000,
        transaction_type=TransactionType.TRANSFER,
        country="IN",
    ),
    RuleDefinition(
        id="rule-origin-drain",
        name="Origin Balance Fully Drained",
        enabled=True,
        severity=RuleSeverity.HIGH,
        action=RuleAction.FORCE_REVIEW,
        min_velocity=0.92,
        transaction_type=ANY,
        country=ANY,
    ),
    RuleDefinition(
        id="rule-money-mule-pattern",
        name="Likely Mule Funnel Pattern",
        enabled=True,
        severity=RuleSeverity.CRITICAL,
        action=RuleAction.FORCE_FRAUD,
        min_amount=25000,
        transaction_type=TransactionType.TRANSFER,
        country=ANY,
    ),
]


def drain_ratio(transaction: TransactionRecord) -> float:
    """Fraction of the origin balance removed, clamped to [0, 1]."""
    if transaction.origin_balance_before <= 0:
        return 0.0
    ratio = transaction.origin_delta / transaction.origin_balance_before
    return max(0.0, min(1.0, ratio))


@dataclass
class RuleEvaluation:
    """Combined effect of every matching rule."""
    score_boost: float = 0.0
    forced_prediction: Optional[Verdict] = None
    review_required: bool = False
    matches: list[RuleMatch] = field(default_factory=list)


class RuleEngine:
    """Evaluate override rules for a single transaction."""

    def evaluate(
        self,
        transaction: TransactionRecord,
        rules: Iterable[RuleDefinition],
        country: Optional[str] = None,
    ) -> RuleEvaluation:
        """
        Evaluate all rules in order.

        Args:
            transaction: The transaction under review
            rules: Active rule set (disabled rules are skipped)
            country: Country code used by country filters

        Returns:
            RuleEvaluation with cumulative boost, forced verdict, review flag
            and the list of matches
        """
        if rules is None:
            raise InvalidEngineInput("Rule set is required (pass [] for no rules)")

        evaluation = RuleEvaluation()

        for rule in rules:
            if not self.matches(rule, transaction, country):
                continue

            boost_applied = rule.effective_boost if rule.action == RuleAction.BOOST_SCORE else 0.0

            if rule.action == RuleAction.BOOST_SCORE:
                evaluation.score_boost += boost_applied
            elif rule.action == RuleAction.FORCE_FRAUD:
                evaluation.forced_prediction = Verdict.FRAUD
            elif rule.action == RuleAction.FORCE_REVIEW:
                evaluation.review_required = True

            evaluation.matches.append(RuleMatch(
                rule_id=rule.id,
                rule_name=rule.name,
                action=rule.action,
                boost_applied=boost_applied,
                reason=self._describe(rule),
            ))

        if evaluation.matches:
            logger.debug(
                "rules_matched",
                transaction_id=transaction.id,
                rules=[m.rule_id for m in evaluation.matches],
                score_boost=evaluation.score_boost,
                forced=evaluation.forced_prediction,
                review_required=evaluation.review_required,
            )

        return evaluation

    @staticmethod
    def matches(
        rule: RuleDefinition,
        transaction: TransactionRecord,
        country: Optional[str] = None,
    ) -> bool:
        """True if the rule is enabled and every present filter passes."""
        if not rule.enabled:
            return False

        if rule.min_amount is not None and transaction.amount < rule.min_amount:
            return False

        if (
            rule.transaction_type
            and rule.transaction_type != ANY
            and rule.transaction_type != transaction.type
        ):
            return False

        if rule.country and rule.country != ANY:
            if not country or country != rule.country:
                return False

        if rule.min_velocity is not None and drain_ratio(transaction) < rule.min_velocity:
            return False

        return True

    @staticmethod
    def _describe(rule: RuleDefinition) -> str:
        """Human-readable list of the filters that contributed to a match."""
        bits: list[str] = []
        # Zero-valued filters are applied but not worth mentioning
        if rule.min_amount:
            bits.append(f"amount >= {format_number(rule.min_amount)}")
        if rule.transaction_type and rule.transaction_type != ANY:
            bits.append(f"type = {rule.transaction_type}")
        if rule.country and rule.country != ANY:
            bits.append(f"country = {rule.country}")
        if rule.min_velocity:
            bits.append(f"velocity >= {as_percent(rule.min_velocity)}%")

        return ", ".join(bits) if bits else "Custom condition matched"
