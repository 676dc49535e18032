"""
Override Rule Schemas.

A rule is an administrator-authored condition/action pair evaluated after
base scoring. Conditions are optional filters; a rule with no filters
matches every transaction.
"""

from enum import StrEnum
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

from securepay.schemas.transaction import TransactionType

ANY = "ANY"


class RuleSeverity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RuleAction(StrEnum):
    BOOST_SCORE = "boost_score"
    FORCE_FRAUD = "force_fraud"
    FORCE_REVIEW = "force_review"


# Boost applied by a boost_score rule that has no explicit magnitude
SEVERITY_BOOST: dict[RuleSeverity, float] = {
    RuleSeverity.CRITICAL: 0.12,
    RuleSeverity.HIGH: 0.08,
    RuleSeverity.MEDIUM: 0.05,
    RuleSeverity.LOW: 0.03,
}


class RuleDefinition(BaseModel):
    """A named override rule."""
    id: str
    name: str
    enabled: bool = True
    severity: RuleSeverity = RuleSeverity.MEDIUM
    action: RuleAction

    boost: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    # Filters (None = not applied)
    min_amount: Optional[float] = None
    transaction_type: Optional[Union[TransactionType, Literal["ANY"]]] = None
    country: Optional[str] = None
    min_velocity: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    @property
    def effective_boost(self) -> float:
        """Explicit boost, or the severity default when none was given."""
        if self.boost is not None:
            return self.boost
        return SEVERITY_BOOST.get(self.severity, SEVERITY_BOOST[RuleSeverity.LOW])


class RuleMatch(BaseModel):
    """A rule that matched a transaction, and what it did."""
    rule_id: str
    rule_name: str
    action: RuleAction
    boost_applied: float = 0.0
    reason: str
