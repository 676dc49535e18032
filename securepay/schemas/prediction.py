"""
Prediction Schemas - the output of one scoring call.

Every prediction answers:
1. What is the verdict, and how likely is fraud?
2. Which boundary was it compared against?
3. What decided it (model, adaptive threshold, or a rule)?
4. Why? (ranked reason codes, matched rules, sub-scores)
"""

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from securepay.schemas.integrations import DispatchResult
from securepay.schemas.rules import RuleMatch
from securepay.schemas.transaction import TransactionRecord


class Verdict(StrEnum):
    FRAUD = "Fraud"
    NOT_FRAUD = "Not Fraud"


class DecisionSource(StrEnum):
    MODEL = "model"
    ADAPTIVE_THRESHOLD = "adaptive-threshold"
    RULE = "rule"


class ReasonCode(BaseModel):
    """A ranked explanation entry."""
    code: str
    title: str
    score: float
    detail: str


class RiskMetrics(BaseModel):
    """Sub-score breakdown (each 0-1)."""
    velocity: float
    anomaly: float
    behavioral: float


class GroundingLink(BaseModel):
    uri: str
    title: str


class PredictionResult(BaseModel):
    """Immutable result of a single scoring call."""

    model_config = ConfigDict(frozen=True)

    prediction: Verdict
    probability: float              # 0-1
    reasoning: str
    threshold_used: float
    decision_source: DecisionSource
    reason_codes: list[ReasonCode] = Field(default_factory=list)   # top 5
    matched_rules: list[RuleMatch] = Field(default_factory=list)
    risk_metrics: RiskMetrics
    sources: list[GroundingLink] = Field(default_factory=list)

    @property
    def is_fraud(self) -> bool:
        return self.prediction == Verdict.FRAUD


class ScoredTransaction(BaseModel):
    """A transaction paired with its prediction (one history item)."""
    transaction: TransactionRecord
    result: PredictionResult


class BatchRow(BaseModel):
    """One row of a batch scoring run."""
    row: int
    transaction_id: Optional[str] = None
    result: Optional[PredictionResult] = None
    threshold: Optional[float] = None
    error: Optional[str] = None


class ScoringOutcome(ScoredTransaction):
    """A scored transaction plus what the application did with it."""
    resolved_threshold: float
    threshold_notes: list[str] = Field(default_factory=list)
    dispatches: list[DispatchResult] = Field(default_factory=list)
    auto_lock_requested: bool = False


class BatchReport(BaseModel):
    rows: list[BatchRow] = Field(default_factory=list)
    total: int = 0
    scored: int = 0
    errors: int = 0
    frauds: int = 0
