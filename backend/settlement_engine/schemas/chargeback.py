"""Chargeback disputes.

Lifecycle:  initiated → under_review → won | lost   (won / lost are terminal)
"""

from datetime import date

from pydantic import Field

from settlement_engine.schemas.common import ChargebackStatus, EngineRecord, Money


class Chargeback(EngineRecord):
    id: str
    order_id: str
    portal: str
    amount: Money = Field(ge=0)
    reason: str
    status: ChargebackStatus
    filed_date: date
    responsible_user: str | None = None


class ChargebackSummary(EngineRecord):
    """Aggregate view.  `records` honours the display filter; totals cover
    the full set unless filtered totals were requested."""
    records: tuple[Chargeback, ...]
    total_count: int
    total_lost_amount: int
    open_disputes: int
    by_status: dict[ChargebackStatus, int]
    status_filter: ChargebackStatus | None = None
    filtered_totals: bool = False


class ChargebackTransition(EngineRecord):
    chargeback: Chargeback
    status: ChargebackStatus
