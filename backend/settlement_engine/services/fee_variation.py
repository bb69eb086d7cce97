"""Fee variation — historical vs current commission per portal x category.

Alerts only when the change is strictly above the spike threshold; a change
exactly at the threshold, or any drop, never alerts.
"""

from collections.abc import Iterable

from settlement_engine.config import EngineConfig
from settlement_engine.schemas.fee import FeeVariation, FeeVariationRecord, FeeVariationResult
from settlement_engine.utils.numbers import pct_diff


def evaluate_fee_variation(record: FeeVariationRecord, config: EngineConfig) -> FeeVariation:
    change = pct_diff(record.current_commission_pct, record.historical_commission_pct)
    return FeeVariation(
        record=record,
        change_pct=change,
        alert=change > config.commission_spike_threshold_pct,
    )


def evaluate_fee_variations(
    records: Iterable[FeeVariationRecord],
    config: EngineConfig,
) -> FeeVariationResult:
    items = tuple(evaluate_fee_variation(r, config) for r in records)
    alerting = [i for i in items if i.alert]
    return FeeVariationResult(
        items=items,
        alert_count=len(alerting),
        # first one wins on equal change
        largest_spike=max(alerting, key=lambda i: i.change_pct, default=None),
    )
