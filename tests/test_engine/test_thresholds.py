"""
Adaptive Threshold Resolver Tests.
"""

from datetime import datetime

import pytest

from securepay.engine.thresholds import (
    THRESHOLD_CEILING,
    THRESHOLD_FLOOR,
    ThresholdResolver,
    blend_thresholds,
    clamp_threshold,
)
from securepay.exceptions import InvalidEngineInput
from securepay.schemas.thresholds import DEFAULT_THRESHOLD_CONFIG, ThresholdConfig
from securepay.schemas.transaction import TransactionRecord, TransactionType

WEEKDAY_AFTERNOON = datetime(2026, 1, 7, 14, 0)
WEEKDAY_NIGHT = datetime(2026, 1, 7, 2, 0)
SATURDAY_NIGHT = datetime(2026, 1, 10, 2, 0)


@pytest.fixture
def transfer() -> TransactionRecord:
    return TransactionRecord(amount=5000, type=TransactionType.TRANSFER)


class TestClamp:
    def test_within_bounds_unchanged(self):
        assert clamp_threshold(0.6) == 0.6

    def test_clamped_to_floor_and_ceiling(self):
        assert clamp_threshold(0.1) == THRESHOLD_FLOOR
        assert clamp_threshold(1.4) == THRESHOLD_CEILING

    def test_blend_averages_then_clamps(self):
        assert blend_thresholds(0.70, 0.62) == pytest.approx(0.66)
        assert blend_thresholds(0.0, 0.0) == THRESHOLD_FLOOR


class TestResolve:
    def setup_method(self):
        self.resolver = ThresholdResolver()

    def test_type_baseline_replaces_default(self, transfer):
        resolution = self.resolver.resolve(
            transfer, DEFAULT_THRESHOLD_CONFIG, None, WEEKDAY_AFTERNOON
        )
        assert resolution.threshold == pytest.approx(0.62)
        assert resolution.notes == ["Type baseline: 62%"]

    def test_country_baseline_is_averaged(self, transfer):
        resolution = self.resolver.resolve(
            transfer, DEFAULT_THRESHOLD_CONFIG, "US", WEEKDAY_AFTERNOON
        )
        assert resolution.threshold == pytest.approx(0.66)
        assert "Country adjustment: US" in resolution.notes

    def test_unknown_country_is_ignored(self, transfer):
        resolution = self.resolver.resolve(
            transfer, DEFAULT_THRESHOLD_CONFIG, "ZZ", WEEKDAY_AFTERNOON
        )
        assert resolution.threshold == pytest.approx(0.62)
        assert len(resolution.notes) == 1

    def test_night_shift_delta(self, transfer):
        resolution = self.resolver.resolve(
            transfer, DEFAULT_THRESHOLD_CONFIG, None, WEEKDAY_NIGHT
        )
        assert resolution.threshold == pytest.approx(0.57)
        assert "Night shift profile" in resolution.notes

    def test_night_shift_starts_at_22(self, transfer):
        late = WEEKDAY_AFTERNOON.replace(hour=22)
        early = WEEKDAY_AFTERNOON.replace(hour=21, minute=59)
        assert "Night shift profile" in self.resolver.resolve(
            transfer, DEFAULT_THRESHOLD_CONFIG, None, late
        ).notes
        assert "Night shift profile" not in self.resolver.resolve(
            transfer, DEFAULT_THRESHOLD_CONFIG, None, early
        ).notes

    def test_weekend_night_stacks(self, transfer):
        resolution = self.resolver.resolve(
            transfer, DEFAULT_THRESHOLD_CONFIG, None, SATURDAY_NIGHT
        )
        assert resolution.threshold == pytest.approx(0.54)
        assert resolution.notes[-2:] == ["Night shift profile", "Weekend profile"]

    def test_default_used_without_type_baseline(self, transfer):
        config = ThresholdConfig(default_threshold=0.8)
        resolution = self.resolver.resolve(transfer, config, None, WEEKDAY_AFTERNOON)
        assert resolution.threshold == pytest.approx(0.8)
        assert resolution.notes == []

    def test_result_is_clamped(self, transfer):
        config = ThresholdConfig(default_threshold=0.2, night_shift_delta=-0.5)
        resolution = self.resolver.resolve(transfer, config, None, WEEKDAY_NIGHT)
        assert resolution.threshold == THRESHOLD_FLOOR

    def test_missing_config_rejected(self, transfer):
        with pytest.raises(InvalidEngineInput):
            self.resolver.resolve(transfer, None, None, WEEKDAY_AFTERNOON)
