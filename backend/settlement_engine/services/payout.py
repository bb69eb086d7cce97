"""Price & payout split — marketplace price down to net payout.

    payout = marketplace_price - commission - platform_fees - shipping_fees - gst

The reported payout is checked against the recomputed one exactly, as in
settlement netting.
"""

from collections.abc import Iterable

from settlement_engine.schemas.payout import PayoutRecord, PayoutSplit, PayoutSummary
from settlement_engine.utils.numbers import mean, ratio_pct


def split_payout(record: PayoutRecord) -> PayoutSplit:
    payout = (
        record.marketplace_price
        - record.commission
        - record.platform_fees
        - record.shipping_fees
        - record.gst
    )
    return PayoutSplit(
        record=record,
        recomputed_payout=payout,
        is_exception=payout != record.net_payout,
        commission_pct=ratio_pct(record.commission, record.marketplace_price),
        net_margin_pct=ratio_pct(payout, record.marketplace_price),
    )


def summarize_payouts(records: Iterable[PayoutRecord]) -> PayoutSummary:
    splits = tuple(split_payout(r) for r in records)

    per_portal: dict[str, list[float]] = {}
    for s in splits:
        per_portal.setdefault(s.record.portal, []).append(s.net_margin_pct)
    portal_margins = {portal: mean(values) for portal, values in per_portal.items()}
    best = max(portal_margins, key=portal_margins.__getitem__, default=None)

    return PayoutSummary(
        items=splits,
        entry_count=len(splits),
        exception_count=sum(1 for s in splits if s.is_exception),
        average_net_margin_pct=mean([s.net_margin_pct for s in splits]),
        average_commission_pct=mean([s.commission_pct for s in splits]),
        best_portal=best,
        best_portal_margin_pct=portal_margins.get(best) if best is not None else None,
    )
