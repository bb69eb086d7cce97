"""Order match — expected orders reported by portals vs orders processed."""

from collections.abc import Iterable

from settlement_engine.schemas.common import OrderMatchStatus
from settlement_engine.schemas.order_match import MatchedOrderDay, OrderMatchRecord, OrderMatchSummary
from settlement_engine.utils.numbers import ratio_pct


def match_orders(records: Iterable[OrderMatchRecord]) -> OrderMatchSummary:
    items = []
    for r in records:
        difference = r.expected_orders - r.processed_orders
        items.append(MatchedOrderDay(
            record=r,
            difference=difference,
            status=OrderMatchStatus.MATCHED if difference == 0 else OrderMatchStatus.MISMATCH,
        ))

    matched = sum(1 for i in items if i.status == OrderMatchStatus.MATCHED)
    mismatched = len(items) - matched

    return OrderMatchSummary(
        items=tuple(items),
        days_tracked=len(items),
        matched_count=matched,
        mismatch_count=mismatched,
        total_expected=sum(i.record.expected_orders for i in items),
        total_processed=sum(i.record.processed_orders for i in items),
        total_difference=sum(i.difference for i in items),
        matched_pct=ratio_pct(matched, len(items)),
        mismatch_pct=ratio_pct(mismatched, len(items)),
    )
