"""Settlement cycles (expected payout events) and their delay classification."""

from datetime import date

from pydantic import Field

from settlement_engine.schemas.common import CycleType, DelayStatus, EngineRecord, Money


class SettlementCycle(EngineRecord):
    batch_id: str
    portal: str
    cycle_type: CycleType
    expected_date: date
    actual_date: date | None = None
    amount: Money = Field(ge=0)


class TrackedCycle(EngineRecord):
    cycle: SettlementCycle
    delay_days: int
    status: DelayStatus

    @property
    def is_paid(self) -> bool:
        return self.cycle.actual_date is not None


class CycleSummary(EngineRecord):
    items: tuple[TrackedCycle, ...]
    total_cycles: int
    delayed_count: int
    critical_count: int
    # Mean delay over non-on-time cycles, 0.0 when none are late
    average_delay_days: float
    highest_delay_portal: str | None = None
    amount_at_risk: int = 0
