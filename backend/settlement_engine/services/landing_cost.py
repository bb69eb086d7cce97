"""Landing cost analysis — true per-SKU profitability after deductions.

    deductions   = commission + shipping_fee + taxes + payment_gateway_fee + promotions
    landing_cost = selling_price - deductions
    margin_pct   = landing_cost / selling_price * 100

Margin bands come from EngineConfig: >= landing_high_margin_pct is
High Margin, >= landing_moderate_margin_pct is Moderate, anything lower
(negative included) is Low / Negative.
"""

from collections.abc import Iterable

from settlement_engine.config import EngineConfig
from settlement_engine.schemas.common import LandingMarginBand
from settlement_engine.schemas.landing_cost import (
    LandedProduct,
    LandingCostRecord,
    LandingCostSummary,
)
from settlement_engine.utils.numbers import mean, ratio_pct


def classify_landing_margin(margin_pct: float, config: EngineConfig) -> LandingMarginBand:
    if margin_pct >= config.landing_high_margin_pct:
        return LandingMarginBand.HIGH_MARGIN
    if margin_pct >= config.landing_moderate_margin_pct:
        return LandingMarginBand.MODERATE
    return LandingMarginBand.LOW


def land_product(record: LandingCostRecord, config: EngineConfig) -> LandedProduct:
    deductions = (
        record.commission
        + record.shipping_fee
        + record.taxes
        + record.payment_gateway_fee
        + record.promotions
    )
    landing_cost = record.selling_price - deductions
    margin_pct = ratio_pct(landing_cost, record.selling_price)
    return LandedProduct(
        record=record,
        deductions=deductions,
        landing_cost=landing_cost,
        margin_pct=margin_pct,
        deduction_pct=ratio_pct(deductions, record.selling_price),
        band=classify_landing_margin(margin_pct, config),
    )


def analyze_landing_costs(
    records: Iterable[LandingCostRecord],
    config: EngineConfig,
    portal: str | None = None,
    band: LandingMarginBand | None = None,
) -> LandingCostSummary:
    """Land every product, then summarize the ones passing the filters.

    Averages and the highest / lowest margin picks cover the filtered view;
    ties go to the product listed first.
    """
    landed = [land_product(r, config) for r in records]
    if portal is not None:
        landed = [p for p in landed if p.record.portal == portal]
    if band is not None:
        landed = [p for p in landed if p.band == band]

    by_band = {b: 0 for b in LandingMarginBand}
    for p in landed:
        by_band[p.band] += 1

    return LandingCostSummary(
        items=tuple(landed),
        product_count=len(landed),
        average_landing_cost=mean([p.landing_cost for p in landed]),
        average_deduction_pct=mean([p.deduction_pct for p in landed]),
        by_band=by_band,
        highest_margin=max(landed, key=lambda p: p.margin_pct, default=None),
        lowest_margin=min(landed, key=lambda p: p.margin_pct, default=None),
    )
