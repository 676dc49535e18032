"""
Alert Integrations - simulated delivery of high-risk alerts.

No network calls are made. Delivery is validated and then resolved
deterministically from the endpoint so results are reproducible:

    ok = len(endpoint) % 5 != 0
"""

import asyncio
import re
from datetime import datetime, timezone
from typing import Any, Sequence

import structlog

from securepay.formatting import as_percent
from securepay.schemas.integrations import DispatchResult, IntegrationTarget
from securepay.schemas.prediction import PredictionResult
from securepay.schemas.transaction import TransactionRecord

logger = structlog.get_logger(__name__)

HIGH_RISK_EVENT = "fraud.high_risk_detected"
TEST_EVENT = "integration.test"

MSG_EMPTY_ENDPOINT = "Endpoint URL is empty."
MSG_BAD_SCHEME = "Endpoint must start with http:// or https://"
MSG_ACCEPTED = "Alert payload accepted by integration endpoint."
MSG_REJECTED = "Endpoint rejected payload (simulated 4xx)."

_HTTP_SCHEME = re.compile(r"^https?://", re.IGNORECASE)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def validate_target(target: IntegrationTarget) -> str | None:
    """Validation message for an unusable endpoint, or None."""
    endpoint = target.endpoint.strip()
    if not endpoint:
        return MSG_EMPTY_ENDPOINT
    if not _HTTP_SCHEME.match(endpoint):
        return MSG_BAD_SCHEME
    return None


def build_high_risk_payload(
    transaction: TransactionRecord,
    result: PredictionResult,
) -> dict[str, Any]:
    return {
        "event": HIGH_RISK_EVENT,
        "transaction_id": transaction.id,
        "country": transaction.country or "UNKNOWN",
        "amount": transaction.amount,
        "type": transaction.type.value,
        "risk": as_percent(result.probability),
        "prediction": result.prediction.value,
        "timestamp": _now_iso(),
    }


class IntegrationDispatcher:
    """Simulated dispatcher for Slack / Teams / webhook / email targets."""

    async def dispatch(
        self,
        target: IntegrationTarget,
        payload: dict[str, Any],
    ) -> DispatchResult:
        error = validate_target(target)
        if error:
            ok, message = False, error
        else:
            # Length of the endpoint as configured, not trimmed
            ok = len(target.endpoint) % 5 != 0
            message = MSG_ACCEPTED if ok else MSG_REJECTED

        logger.info(
            "integration_dispatched",
            target_id=target.id,
            target_type=target.type.value,
            alert_event=payload.get("event"),
            ok=ok,
        )
        return DispatchResult(
            target_id=target.id,
            target_name=target.name,
            ok=ok,
            message=message,
            sent_at=_now_iso(),
        )

    async def send_test_alert(self, target: IntegrationTarget) -> DispatchResult:
        return await self.dispatch(target, {
            "event": TEST_EVENT,
            "message": "SecurePay test alert",
            "timestamp": _now_iso(),
        })

    async def dispatch_high_risk_alert(
        self,
        transaction: TransactionRecord,
        result: PredictionResult,
        targets: Sequence[IntegrationTarget],
    ) -> list[DispatchResult]:
        """Send to every enabled target; disabled targets are skipped."""
        enabled = [t for t in targets if t.enabled]
        if not enabled:
            return []

        payload = build_high_risk_payload(transaction, result)
        results = await asyncio.gather(*(self.dispatch(t, payload) for t in enabled))
        return list(results)
