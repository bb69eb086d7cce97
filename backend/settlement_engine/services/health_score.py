"""Reconciliation health score.

    raw   = matched * w_matched
          + (100 - mismatch) * w_mismatch
          + (100 - delayed) * w_delayed
          + (100 - chargeback_loss) * w_chargeback_loss
    score = round_half_up(clamp(raw, 0, 100))

    score >= 80  Healthy
    score >= 50  Monitor
    otherwise    High Risk
"""

from settlement_engine.config import HealthWeights
from settlement_engine.schemas.common import HealthStatus
from settlement_engine.schemas.health import HealthScoreInputs, HealthScoreResult
from settlement_engine.utils.numbers import clamp, round_half_up

HEALTHY_FLOOR = 80
MONITOR_FLOOR = 50


def health_status(score: int) -> HealthStatus:
    if score >= HEALTHY_FLOOR:
        return HealthStatus.HEALTHY
    if score >= MONITOR_FLOOR:
        return HealthStatus.MONITOR
    return HealthStatus.HIGH_RISK


def compute_health_score(inputs: HealthScoreInputs, weights: HealthWeights) -> HealthScoreResult:
    raw = (
        inputs.matched_pct * weights.matched
        + (100 - inputs.mismatch_pct) * weights.mismatch
        + (100 - inputs.delayed_pct) * weights.delayed
        + (100 - inputs.chargeback_loss_pct) * weights.chargeback_loss
    )
    score = round_half_up(clamp(raw, 0, 100))
    return HealthScoreResult(score=score, status=health_status(score), inputs=inputs)
