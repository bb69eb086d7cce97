"""Settlement line items and netting results.

Money fields are integers in currency minor units; netting compares them
exactly, no tolerance.
"""

from pydantic import computed_field

from settlement_engine.schemas.common import EngineRecord, Money, PaymentTiming, SettlementStatus
from settlement_engine.utils.numbers import round_half_up

PROTECTION_FUND_RATE = 0.005


class SettlementLineItem(EngineRecord):
    """One accounting entry for one order item on one portal."""
    id: str
    sku_id: str
    order_item_id: str
    order_id: str
    portal: str
    batch_id: str
    payment_timing: PaymentTiming
    settlement_status: SettlementStatus

    sale_amount: Money
    refund_amount: Money
    offer_amount: Money
    seller_share: Money
    customer_addons: Money
    marketplace_fees: Money
    taxes: Money
    reported_net: Money


class NettedLineItem(EngineRecord):
    line_item: SettlementLineItem
    recomputed_net: int
    # reported_net - recomputed_net
    variance: int
    is_exception: bool


class LineItemGroup(EngineRecord):
    """Line items sharing an order_item_id."""
    order_item_id: str
    line_items: tuple[NettedLineItem, ...]
    total_net: int
    has_exception: bool


class SettlementTotals(EngineRecord):
    """Additive batch totals.  `a + b` merges two partitions."""
    line_count: int = 0
    exception_count: int = 0
    total_sale: int = 0
    total_refund: int = 0
    total_offer: int = 0
    total_seller_share: int = 0
    total_addons: int = 0
    total_fees: int = 0
    total_taxes: int = 0
    total_net: int = 0

    @computed_field
    @property
    def protection_fund(self) -> int:
        """Seller protection fund contribution, 0.5% of gross sale.

        Derived, so it is recomputed after a merge rather than summed.
        """
        return round_half_up(self.total_sale * PROTECTION_FUND_RATE)

    def __add__(self, other: "SettlementTotals") -> "SettlementTotals":
        if not isinstance(other, SettlementTotals):
            return NotImplemented
        return SettlementTotals(**{
            name: getattr(self, name) + getattr(other, name)
            for name in SettlementTotals.model_fields
        })


class NettingResult(EngineRecord):
    """Per-item netting, order-item groups and batch totals."""
    items: tuple[NettedLineItem, ...]
    groups: tuple[LineItemGroup, ...]
    totals: SettlementTotals
    by_portal: dict[str, SettlementTotals]

    @property
    def exceptions(self) -> tuple[NettedLineItem, ...]:
        return tuple(i for i in self.items if i.is_exception)
