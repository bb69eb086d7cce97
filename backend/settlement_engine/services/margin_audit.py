"""Margin audit — expected vs actual margin per SKU x portal.

A record is a `Warning` when its margin drop (expected - actual, in
percentage points) reaches the configured threshold, `Healthy` otherwise.
Selling-price disagreement between the internal price and the portal's
price is flagged independently.

Sorting follows the audit table contract: default is margin drop
descending (ties on ascending SKU); any other column starts ascending and
flips direction when requested again.
"""

from collections.abc import Iterable

from settlement_engine.config import EngineConfig
from settlement_engine.schemas.common import MarginClassification, MarginTrend
from settlement_engine.schemas.price_audit import (
    AuditedPrice,
    MarginAuditResult,
    PriceAuditRecord,
    SortKey,
    SortState,
)
from settlement_engine.utils.numbers import pct_diff

DEFAULT_SORT = SortState(key="margin_drop", direction="desc")


def _trend(record: PriceAuditRecord, stable_band: float) -> tuple[float | None, MarginTrend | None]:
    if record.previous_margin_pct is None:
        return None, None
    change = pct_diff(record.actual_margin_pct, record.previous_margin_pct)
    if abs(change) < stable_band:
        return change, MarginTrend.STABLE
    return change, MarginTrend.UP if change > 0 else MarginTrend.DOWN


def audit_record(record: PriceAuditRecord, config: EngineConfig) -> AuditedPrice:
    drop = pct_diff(record.expected_margin_pct, record.actual_margin_pct)
    change, trend = _trend(record, config.margin_trend_stable_band_pct)
    return AuditedPrice(
        record=record,
        margin_drop=drop,
        price_mismatch=record.selling_price != record.portal_selling_price,
        classification=(
            MarginClassification.WARNING
            if drop >= config.margin_drop_threshold_pct
            else MarginClassification.HEALTHY
        ),
        period_change=change,
        trend=trend,
    )


def next_sort_state(current: SortState | None, requested: SortKey) -> SortState:
    """Column-header click: same key toggles, a new key starts at its default."""
    if current is not None and current.key == requested:
        return SortState(key=requested, direction="asc" if current.direction == "desc" else "desc")
    return SortState(key=requested, direction="desc" if requested == "margin_drop" else "asc")


def _sort_value(item: AuditedPrice, key: SortKey):
    if key == "margin_drop":
        return item.margin_drop
    value = getattr(item.record, key)
    return value.casefold() if isinstance(value, str) else value


def sort_audited(items: Iterable[AuditedPrice], state: SortState = DEFAULT_SORT) -> tuple[AuditedPrice, ...]:
    """Sort by the state's key; ties always fall back to ascending SKU."""
    by_sku = sorted(items, key=lambda i: i.record.sku_id)
    return tuple(sorted(
        by_sku,
        key=lambda i: _sort_value(i, state.key),
        reverse=state.direction == "desc",
    ))


def audit_margins(
    records: Iterable[PriceAuditRecord],
    config: EngineConfig,
    sort: SortState | None = None,
    portal: str | None = None,
) -> MarginAuditResult:
    """Annotate every record and count drops, mismatches and healthy margins.

    `portal` narrows the audit to one portal; counts follow the narrowed set
    (the audit table's cards describe what the table shows).
    """
    sort = sort or DEFAULT_SORT
    audited = [
        audit_record(r, config)
        for r in records
        if portal is None or r.portal == portal
    ]
    warnings = sum(1 for a in audited if a.classification == MarginClassification.WARNING)

    return MarginAuditResult(
        items=sort_audited(audited, sort),
        audited_count=len(audited),
        margin_drop_count=warnings,
        price_mismatch_count=sum(1 for a in audited if a.price_mismatch),
        healthy_count=len(audited) - warnings,
        sort=sort,
    )
