"""
Simulated alert integration tests.
"""

import pytest

from securepay.engine.scorer import RiskScorer
from securepay.schemas.integrations import IntegrationTarget, IntegrationType
from securepay.services.integrations import (
    HIGH_RISK_EVENT,
    MSG_ACCEPTED,
    MSG_BAD_SCHEME,
    MSG_EMPTY_ENDPOINT,
    MSG_REJECTED,
    IntegrationDispatcher,
    build_high_risk_payload,
    validate_target,
)


def _target(endpoint: str, enabled: bool = True, target_id: str = "t1") -> IntegrationTarget:
    return IntegrationTarget(
        id=target_id,
        name=f"Target {target_id}",
        type=IntegrationType.WEBHOOK,
        endpoint=endpoint,
        enabled=enabled,
    )


class TestValidation:
    def test_empty_endpoint(self):
        assert validate_target(_target("   ")) == MSG_EMPTY_ENDPOINT

    def test_non_http_scheme(self):
        assert validate_target(_target("ftp://example.com")) == MSG_BAD_SCHEME

    def test_scheme_is_case_insensitive(self):
        assert validate_target(_target("HTTPS://example.com")) is None


class TestDispatch:
    def setup_method(self):
        self.dispatcher = IntegrationDispatcher()

    @pytest.mark.asyncio
    async def test_accepted_endpoint(self):
        # 24 characters
        result = await self.dispatcher.send_test_alert(_target("https://example.com/hook"))
        assert result.ok
        assert result.message == MSG_ACCEPTED

    @pytest.mark.asyncio
    async def test_rejected_endpoint(self):
        # 25 characters
        result = await self.dispatcher.send_test_alert(_target("https://example.com/hooks"))
        assert not result.ok
        assert result.message == MSG_REJECTED

    @pytest.mark.asyncio
    async def test_dispatch_with_event_payload(self):
        result = await self.dispatcher.dispatch(
            _target("https://example.com/hook"),
            {"event": HIGH_RISK_EVENT, "transaction_id": "TXN-1"},
        )
        assert result.ok
        assert result.target_id == "t1"
        assert result.sent_at.endswith("Z")

    @pytest.mark.asyncio
    async def test_invalid_endpoint_not_sent(self):
        result = await self.dispatcher.send_test_alert(_target(""))
        assert not result.ok
        assert result.message == MSG_EMPTY_ENDPOINT

    @pytest.mark.asyncio
    async def test_high_risk_alert_skips_disabled(self, drained_cash_out):
        result = RiskScorer().score(drained_cash_out, rules=[])
        targets = [
            _target("https://example.com/hook", target_id="on"),
            _target("https://example.com/hook", enabled=False, target_id="off"),
        ]
        dispatches = await self.dispatcher.dispatch_high_risk_alert(
            drained_cash_out, result, targets
        )
        assert [d.target_id for d in dispatches] == ["on"]

    @pytest.mark.asyncio
    async def test_no_enabled_targets(self, drained_cash_out):
        result = RiskScorer().score(drained_cash_out, rules=[])
        dispatches = await self.dispatcher.dispatch_high_risk_alert(
            drained_cash_out, result, [_target("https://example.com/hook", enabled=False)]
        )
        assert dispatches == []


class TestPayload:
    def test_high_risk_payload(self, drained_cash_out):
        result = RiskScorer().score(drained_cash_out, rules=[])
        payload = build_high_risk_payload(drained_cash_out, result)

        assert payload["event"] == HIGH_RISK_EVENT
        assert payload["transaction_id"] == drained_cash_out.id
        assert payload["country"] == "US"
        assert payload["type"] == "CASH_OUT"
        assert payload["risk"] == 74

    def test_unknown_country(self, drained_cash_out):
        tx = drained_cash_out.model_copy(update={"country": None})
        result = RiskScorer().score(tx, rules=[])
        assert build_high_risk_payload(tx, result)["country"] == "UNKNOWN"
