"""
SecurePay Decision Engine - deterministic fraud scoring.

Components:
- rules: Override rule evaluation (boost / force-fraud / force-review)
- thresholds: Adaptive decision boundary (type, country, time of day)
- scorer: Heuristic sub-scores, bonuses, rule merge and verdict

All three are pure: no I/O, no shared mutable state.
"""

from securepay.engine.rules import DEFAULT_RULES, RuleEngine, RuleEvaluation, drain_ratio
from securepay.engine.scorer import RiskScorer
from securepay.engine.thresholds import ThresholdResolution, ThresholdResolver, blend_thresholds

__all__ = [
    "DEFAULT_RULES",
    "RiskScorer",
    "RuleEngine",
    "RuleEvaluation",
    "ThresholdResolution",
    "ThresholdResolver",
    "blend_thresholds",
    "drain_ratio",
]
