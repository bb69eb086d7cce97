"""Per-product, per-portal price and payout split."""

from pydantic import Field

from settlement_engine.schemas.common import EngineRecord, Money


class PayoutRecord(EngineRecord):
    product_id: str
    product_name: str
    portal: str
    marketplace_price: Money = Field(ge=0)
    commission: Money = Field(ge=0)
    platform_fees: Money = Field(ge=0)
    shipping_fees: Money = Field(ge=0)
    gst: Money = Field(ge=0)
    net_payout: Money


class PayoutSplit(EngineRecord):
    record: PayoutRecord
    recomputed_payout: int
    is_exception: bool
    commission_pct: float
    net_margin_pct: float


class PayoutSummary(EngineRecord):
    items: tuple[PayoutSplit, ...]
    entry_count: int
    exception_count: int
    average_net_margin_pct: float
    average_commission_pct: float
    best_portal: str | None = None
    best_portal_margin_pct: float | None = None
