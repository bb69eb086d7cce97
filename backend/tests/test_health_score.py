"""Health score tests."""

import pytest
from pydantic import ValidationError

from settlement_engine.config import HealthWeights
from settlement_engine.schemas.common import HealthStatus
from settlement_engine.schemas.health import HealthScoreInputs
from settlement_engine.services.health_score import compute_health_score, health_status


def inputs(matched=92, mismatch=3, delayed=10, chargeback_loss=2) -> HealthScoreInputs:
    return HealthScoreInputs(
        matched_pct=matched,
        mismatch_pct=mismatch,
        delayed_pct=delayed,
        chargeback_loss_pct=chargeback_loss,
    )


@pytest.mark.engine
class TestHealthScore:

    def test_weighted_score(self, config):
        """92/3/10/2 -> 36.8 + 24.25 + 18 + 14.7 = 93.75 -> 94, Healthy."""
        result = compute_health_score(inputs(), config.health_weights)
        assert result.score == 94
        assert result.status == HealthStatus.HEALTHY

    def test_half_rounds_up(self, config):
        """raw 92.5 rounds to 93, not to the even 92."""
        result = compute_health_score(
            inputs(matched=100, mismatch=30, delayed=0, chargeback_loss=0),
            config.health_weights,
        )
        assert result.score == 93

    def test_perfect_and_worst(self, config):
        assert compute_health_score(inputs(100, 0, 0, 0), config.health_weights).score == 100
        worst = compute_health_score(inputs(0, 100, 100, 100), config.health_weights)
        assert worst.score == 0
        assert worst.status == HealthStatus.HIGH_RISK

    @pytest.mark.parametrize("score,expected", [
        (100, HealthStatus.HEALTHY),
        (80, HealthStatus.HEALTHY),
        (79, HealthStatus.MONITOR),
        (50, HealthStatus.MONITOR),
        (49, HealthStatus.HIGH_RISK),
        (0, HealthStatus.HIGH_RISK),
    ])
    def test_status_bands(self, score, expected):
        assert health_status(score) == expected

    def test_custom_weights(self):
        weights = HealthWeights(matched=1.0, mismatch=0, delayed=0, chargeback_loss=0)
        assert compute_health_score(inputs(), weights).score == 92

    def test_inputs_outside_range_are_rejected(self):
        with pytest.raises(ValidationError):
            inputs(matched=101)

    def test_clamped_inputs(self):
        clamped = HealthScoreInputs.clamped(
            matched_pct=104.2, mismatch_pct=-1, delayed_pct=10, chargeback_loss_pct=2,
        )
        assert clamped.matched_pct == 100.0
        assert clamped.mismatch_pct == 0.0
