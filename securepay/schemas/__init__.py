"""
Pydantic models shared by the engine, storage, services and API.
"""

from securepay.schemas.audit import (
    AuditCategory,
    AuditLogEntry,
    AuditStatus,
    ChainVerification,
)
from securepay.schemas.feedback import (
    FeedbackItem,
    FeedbackLabel,
    MonitoringSnapshot,
    TypeBreakdown,
)
from securepay.schemas.integrations import DispatchResult, IntegrationTarget, IntegrationType
from securepay.schemas.prediction import (
    BatchReport,
    BatchRow,
    DecisionSource,
    GroundingLink,
    PredictionResult,
    ReasonCode,
    RiskMetrics,
    ScoredTransaction,
    ScoringOutcome,
    Verdict,
)
from securepay.schemas.rules import RuleAction, RuleDefinition, RuleMatch, RuleSeverity
from securepay.schemas.session import SessionEvent, SessionRecord, UserRole
from securepay.schemas.settings import RuntimeSettings
from securepay.schemas.thresholds import ThresholdConfig
from securepay.schemas.transaction import TransactionRecord, TransactionType

__all__ = [
    "AuditCategory",
    "AuditLogEntry",
    "AuditStatus",
    "BatchReport",
    "BatchRow",
    "ChainVerification",
    "DecisionSource",
    "DispatchResult",
    "FeedbackItem",
    "FeedbackLabel",
    "GroundingLink",
    "IntegrationTarget",
    "IntegrationType",
    "MonitoringSnapshot",
    "PredictionResult",
    "ReasonCode",
    "RiskMetrics",
    "RuleAction",
    "RuleDefinition",
    "RuleMatch",
    "RuleSeverity",
    "RuntimeSettings",
    "ScoredTransaction",
    "ScoringOutcome",
    "SessionEvent",
    "SessionRecord",
    "ThresholdConfig",
    "TransactionRecord",
    "TransactionType",
    "TypeBreakdown",
    "UserRole",
    "Verdict",
]
