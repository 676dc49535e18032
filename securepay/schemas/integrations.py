"""
Alert Integration Schemas.
"""

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel


class IntegrationType(StrEnum):
    SLACK = "slack"
    TEAMS = "teams"
    WEBHOOK = "webhook"
    EMAIL = "email"


class IntegrationTarget(BaseModel):
    """A configured alert destination."""
    id: str
    name: str
    type: IntegrationType
    endpoint: str
    enabled: bool = False
    secret: Optional[str] = None


class DispatchResult(BaseModel):
    """Outcome of one (simulated) dispatch to one target."""
    target_id: str
    target_name: str
    ok: bool
    message: str
    sent_at: str


DEFAULT_INTEGRATION_TARGETS: list[IntegrationTarget] = [
    IntegrationTarget(
        id="int-slack-soc",
        name="SOC Slack Channel",
        type=IntegrationType.SLACK,
        endpoint="https://hooks.slack.com/services/demo/example",
        enabled=False,
    ),
    IntegrationTarget(
        id="int-teams-fraud",
        name="Fraud Ops Teams",
        type=IntegrationType.TEAMS,
        endpoint="https://outlook.office.com/webhook/demo/example",
        enabled=False,
    ),
]
