"""Per-SKU landing cost: what a sale actually lands after every deduction."""

from pydantic import Field

from settlement_engine.schemas.common import EngineRecord, LandingMarginBand, Money


class LandingCostRecord(EngineRecord):
    sku_id: str
    product_name: str
    portal: str
    mrp: Money = Field(ge=0)
    selling_price: Money = Field(ge=0)
    commission: Money = Field(ge=0)
    shipping_fee: Money = Field(ge=0)
    taxes: Money = Field(ge=0)
    payment_gateway_fee: Money = Field(ge=0)
    promotions: Money = Field(ge=0)


class LandedProduct(EngineRecord):
    record: LandingCostRecord
    deductions: int
    # selling_price - deductions; negative when deductions exceed the price
    landing_cost: int
    margin_pct: float
    deduction_pct: float
    band: LandingMarginBand


class LandingCostSummary(EngineRecord):
    items: tuple[LandedProduct, ...]
    product_count: int
    average_landing_cost: float
    average_deduction_pct: float
    by_band: dict[LandingMarginBand, int]
    highest_margin: LandedProduct | None = None
    lowest_margin: LandedProduct | None = None
