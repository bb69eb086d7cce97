"""Commission (fee) variation records."""

from settlement_engine.schemas.common import EngineRecord


class FeeVariationRecord(EngineRecord):
    """Historical vs current commission for one portal x category."""
    portal: str
    category: str
    historical_commission_pct: float
    current_commission_pct: float


class FeeVariation(EngineRecord):
    record: FeeVariationRecord
    change_pct: float
    alert: bool


class FeeVariationResult(EngineRecord):
    items: tuple[FeeVariation, ...]
    alert_count: int
    largest_spike: FeeVariation | None = None
