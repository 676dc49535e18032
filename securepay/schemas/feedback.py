"""
Analyst Feedback & Model Monitoring Schemas.
"""

from enum import StrEnum

from pydantic import BaseModel, Field

from securepay.schemas.prediction import Verdict
from securepay.schemas.transaction import TransactionType


class FeedbackLabel(StrEnum):
    CONFIRMED_FRAUD = "confirmed_fraud"
    FALSE_POSITIVE = "false_positive"
    NEEDS_REVIEW = "needs_review"


class FeedbackItem(BaseModel):
    """An analyst's label for a scored transaction (one per transaction)."""
    id: str
    transaction_id: str
    label: FeedbackLabel
    prediction: Verdict
    probability: float
    timestamp: str
    analyst: str


class TypeBreakdown(BaseModel):
    type: TransactionType
    total: int = 0
    labeled: int = 0
    confirmed_fraud: int = 0
    false_positive: int = 0


class MonitoringSnapshot(BaseModel):
    """
    Label coverage and quality estimates over the scoring history.

    Ratios are percentages rounded to one decimal.
    """
    total_predictions: int = 0
    labeled_count: int = 0
    label_coverage: float = 0.0
    confirmed_fraud: int = 0
    false_positive: int = 0
    needs_review: int = 0
    precision_estimate: float = 0.0
    false_positive_rate: float = 0.0
    average_risk: float = 0.0
    drift_score: float = 0.0
    by_type: list[TypeBreakdown] = Field(default_factory=list)
