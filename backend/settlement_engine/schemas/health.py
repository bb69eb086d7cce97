"""Reconciliation health score inputs and result."""

from pydantic import Field

from settlement_engine.schemas.common import EngineRecord, HealthStatus


def _clamp_pct(value: float) -> float:
    return max(0.0, min(100.0, value))


class HealthScoreInputs(EngineRecord):
    matched_pct: float = Field(ge=0, le=100)
    mismatch_pct: float = Field(ge=0, le=100)
    delayed_pct: float = Field(ge=0, le=100)
    chargeback_loss_pct: float = Field(ge=0, le=100)

    @classmethod
    def clamped(
        cls,
        matched_pct: float,
        mismatch_pct: float,
        delayed_pct: float,
        chargeback_loss_pct: float,
    ) -> "HealthScoreInputs":
        """Build inputs from raw ratios, clamping each into [0, 100]."""
        return cls(
            matched_pct=_clamp_pct(matched_pct),
            mismatch_pct=_clamp_pct(mismatch_pct),
            delayed_pct=_clamp_pct(delayed_pct),
            chargeback_loss_pct=_clamp_pct(chargeback_loss_pct),
        )


class HealthScoreResult(EngineRecord):
    score: int = Field(ge=0, le=100)
    status: HealthStatus
    inputs: HealthScoreInputs
