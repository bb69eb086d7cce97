"""Settlement netting — recompute and verify net amount per line item.

Net is the signed sum of the component fields:

    net = offer_amount + seller_share + customer_addons + marketplace_fees + taxes

Amounts are integer minor units, so the comparison with the reported net is
exact.  A mismatch flags the item as a reconciliation exception; every
aggregate uses the recomputed value so the engine's numbers stay
self-consistent.
"""

from collections.abc import Iterable
from functools import reduce
from operator import add

from settlement_engine.schemas.settlement import (
    LineItemGroup,
    NettedLineItem,
    NettingResult,
    SettlementLineItem,
    SettlementTotals,
)


def recompute_net(item: SettlementLineItem) -> int:
    return (
        item.offer_amount
        + item.seller_share
        + item.customer_addons
        + item.marketplace_fees
        + item.taxes
    )


def net_line_item(item: SettlementLineItem) -> NettedLineItem:
    net = recompute_net(item)
    return NettedLineItem(
        line_item=item,
        recomputed_net=net,
        variance=item.reported_net - net,
        is_exception=item.reported_net != net,
    )


def totals_for(netted: Iterable[NettedLineItem]) -> SettlementTotals:
    """Additive reduction over netted items (recomputed net, never reported)."""
    return reduce(
        add,
        (
            SettlementTotals(
                line_count=1,
                exception_count=int(n.is_exception),
                total_sale=n.line_item.sale_amount,
                total_refund=n.line_item.refund_amount,
                total_offer=n.line_item.offer_amount,
                total_seller_share=n.line_item.seller_share,
                total_addons=n.line_item.customer_addons,
                total_fees=n.line_item.marketplace_fees,
                total_taxes=n.line_item.taxes,
                total_net=n.recomputed_net,
            )
            for n in netted
        ),
        SettlementTotals(),
    )


def merge_totals(partitions: Iterable[SettlementTotals]) -> SettlementTotals:
    """Merge per-partition totals (e.g. one per portal) into batch totals."""
    return reduce(add, partitions, SettlementTotals())


def group_by_order_item(netted: Iterable[NettedLineItem]) -> tuple[LineItemGroup, ...]:
    """Group line items on order_item_id, in first-seen order."""
    buckets: dict[str, list[NettedLineItem]] = {}
    for n in netted:
        buckets.setdefault(n.line_item.order_item_id, []).append(n)

    return tuple(
        LineItemGroup(
            order_item_id=order_item_id,
            line_items=tuple(members),
            total_net=sum(m.recomputed_net for m in members),
            has_exception=any(m.is_exception for m in members),
        )
        for order_item_id, members in buckets.items()
    )


def net_line_items(items: Iterable[SettlementLineItem]) -> NettingResult:
    """Net every line item, group on order item and total the batch."""
    netted = tuple(net_line_item(i) for i in items)

    per_portal: dict[str, list[NettedLineItem]] = {}
    for n in netted:
        per_portal.setdefault(n.line_item.portal, []).append(n)
    by_portal = {portal: totals_for(members) for portal, members in per_portal.items()}

    return NettingResult(
        items=netted,
        groups=group_by_order_item(netted),
        totals=merge_totals(by_portal.values()),
        by_portal=by_portal,
    )


def refund_rates_by_portal(result: NettingResult) -> dict[str, float]:
    """Refund ratio (|refund| / sale) per portal; portals without sales are skipped."""
    return {
        portal: abs(totals.total_refund) / totals.total_sale
        for portal, totals in result.by_portal.items()
        if totals.total_sale > 0
    }
