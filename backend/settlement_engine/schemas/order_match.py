"""Expected vs processed order counts per day and portal."""

from datetime import date

from pydantic import Field

from settlement_engine.schemas.common import EngineRecord, OrderMatchStatus


class OrderMatchRecord(EngineRecord):
    order_date: date
    portal: str
    expected_orders: int = Field(ge=0)
    processed_orders: int = Field(ge=0)


class MatchedOrderDay(EngineRecord):
    record: OrderMatchRecord
    difference: int
    status: OrderMatchStatus


class OrderMatchSummary(EngineRecord):
    items: tuple[MatchedOrderDay, ...]
    days_tracked: int
    matched_count: int
    mismatch_count: int
    total_expected: int
    total_processed: int
    total_difference: int
    matched_pct: float
    mismatch_pct: float
