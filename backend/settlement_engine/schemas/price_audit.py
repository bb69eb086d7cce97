"""Price audit snapshots, margin annotations and audit sort state."""

from datetime import date
from typing import Literal

from pydantic import Field

from settlement_engine.schemas.common import (
    EngineRecord,
    MarginClassification,
    MarginTrend,
    Money,
)

SortKey = Literal[
    "margin_drop",
    "product_name",
    "mrp",
    "selling_price",
    "portal_selling_price",
    "expected_margin_pct",
    "actual_margin_pct",
]
SortDirection = Literal["asc", "desc"]


class PriceAuditRecord(EngineRecord):
    """One SKU x portal pricing snapshot."""
    sku_id: str
    product_name: str
    portal: str
    mrp: Money = Field(ge=0)
    selling_price: Money = Field(ge=0)
    portal_selling_price: Money = Field(ge=0)
    expected_margin_pct: float
    actual_margin_pct: float
    audit_date: date
    previous_margin_pct: float | None = None


class AuditedPrice(EngineRecord):
    record: PriceAuditRecord
    margin_drop: float
    price_mismatch: bool
    classification: MarginClassification
    # Period-over-period movement, only when previous_margin_pct is known
    period_change: float | None = None
    trend: MarginTrend | None = None


class SortState(EngineRecord):
    key: SortKey = "margin_drop"
    direction: SortDirection = "desc"


class MarginAuditResult(EngineRecord):
    items: tuple[AuditedPrice, ...]
    audited_count: int
    margin_drop_count: int
    price_mismatch_count: int
    healthy_count: int
    sort: SortState = SortState()

    @property
    def warnings(self) -> tuple[AuditedPrice, ...]:
        return tuple(i for i in self.items if i.classification == MarginClassification.WARNING)
