"""
Runtime settings persisted alongside rules and thresholds.

These are the knobs an administrator flips from the settings screen;
process-level configuration lives in `securepay.config`.
"""

from pydantic import BaseModel, Field


class RuntimeSettings(BaseModel):
    risk_threshold: float = Field(default=0.70, ge=0.0, le=1.0)
    realtime_alerts: bool = True
    auto_lock: bool = False
