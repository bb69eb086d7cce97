"""Reconciliation run: normalize, reconcile, alert and score in one pass.

`run_full_reconciliation` orchestrates every module over a typed batch and
returns the complete result plus a run summary.  `reconcile_raw` puts the
record normalizer in front of it for untyped input (API / CLI payloads) and
carries the rejects through to the result.

Every call is a pure function of (batch, config, as_of):
    - no module reads the wall clock; `as_of` is the run's "today"
    - the run id is derived from the canonical input, so identical runs
      produce identical output
"""

import json
import logging
import uuid
from datetime import date, datetime, time

from settlement_engine.config import EngineConfig
from settlement_engine.schemas.common import Severity
from settlement_engine.schemas.cycle import CycleSummary
from settlement_engine.schemas.health import HealthScoreInputs
from settlement_engine.schemas.order_match import OrderMatchSummary
from settlement_engine.schemas.reconciliation import (
    ReconciliationBatch,
    ReconciliationRun,
    RejectOut,
    RunRequest,
    RunSummary,
)
from settlement_engine.schemas.settlement import NettingResult
from settlement_engine.services.chargeback import summarize_chargebacks
from settlement_engine.services.fee_variation import evaluate_fee_variations
from settlement_engine.services.health_score import compute_health_score
from settlement_engine.services.landing_cost import analyze_landing_costs
from settlement_engine.services.margin_audit import audit_margins
from settlement_engine.services.netting import net_line_items, refund_rates_by_portal
from settlement_engine.services.normalizer import RejectedRecord, normalize_records
from settlement_engine.services.order_match import match_orders
from settlement_engine.services.payout import summarize_payouts
from settlement_engine.services.risk_alerts import synthesize_alerts
from settlement_engine.services.settlement_cycle import track_settlement_cycles
from settlement_engine.utils.numbers import ratio_pct

logger = logging.getLogger("settlement_engine.reconciliation")

RUN_NAMESPACE = uuid.UUID("6f1c2a4e-8d3b-4f7a-9c55-2b0e7d1a3c90")

# RunRequest field -> normalizer schema tag
RAW_SCHEMAS = {
    "settlements": "settlement_line_item",
    "price_audits": "price_audit",
    "fee_variations": "fee_variation",
    "settlement_cycles": "settlement_cycle",
    "chargebacks": "chargeback",
    "order_matches": "order_match",
    "payouts": "payout",
    "landing_costs": "landing_cost",
}


def _run_id(batch: ReconciliationBatch, config: EngineConfig, as_of: date) -> str:
    canonical = json.dumps(
        {
            "batch": batch.model_dump(mode="json"),
            "config": config.model_dump(mode="json"),
            "as_of": as_of.isoformat(),
        },
        sort_keys=True,
        separators=(",", ":"),
    )
    return str(uuid.uuid5(RUN_NAMESPACE, canonical))


def derive_health_inputs(
    netting: NettingResult,
    cycles: CycleSummary,
    chargeback_amounts: tuple[int, int],
    order_match: OrderMatchSummary | None = None,
) -> HealthScoreInputs:
    """Build health inputs from the run itself.

    matched / mismatch: order match days when supplied, otherwise the share
    of line items whose reported net reconciles.  With nothing to compare,
    everything counts as matched.
    """
    if order_match is not None and order_match.days_tracked:
        matched_pct = order_match.matched_pct
        mismatch_pct = order_match.mismatch_pct
    elif netting.totals.line_count:
        lines = netting.totals.line_count
        exceptions = netting.totals.exception_count
        matched_pct = ratio_pct(lines - exceptions, lines)
        mismatch_pct = ratio_pct(exceptions, lines)
    else:
        matched_pct, mismatch_pct = 100.0, 0.0

    lost_amount, disputed_amount = chargeback_amounts
    return HealthScoreInputs.clamped(
        matched_pct=matched_pct,
        mismatch_pct=mismatch_pct,
        delayed_pct=ratio_pct(cycles.delayed_count, cycles.total_cycles),
        chargeback_loss_pct=ratio_pct(lost_amount, disputed_amount),
    )


def run_full_reconciliation(
    batch: ReconciliationBatch,
    config: EngineConfig,
    as_of: date,
    rejected: tuple[RejectOut, ...] = (),
) -> ReconciliationRun:
    """Execute every module over `batch` and return the combined result."""
    run_id = _run_id(batch, config, as_of)
    logger.info(
        "Reconciliation run %s as of %s: %d line items, %d audits, %d fee rows, "
        "%d cycles, %d chargebacks",
        run_id, as_of, len(batch.settlements), len(batch.price_audits),
        len(batch.fee_variations), len(batch.settlement_cycles), len(batch.chargebacks),
    )

    netting = net_line_items(batch.settlements)
    margins = audit_margins(batch.price_audits, config)
    fees = evaluate_fee_variations(batch.fee_variations, config)
    cycles = track_settlement_cycles(batch.settlement_cycles, config, as_of)
    chargebacks = summarize_chargebacks(batch.chargebacks)
    order_match = match_orders(batch.order_matches) if batch.order_matches else None
    payouts = summarize_payouts(batch.payouts) if batch.payouts else None
    landing_costs = (
        analyze_landing_costs(batch.landing_costs, config) if batch.landing_costs else None
    )

    if netting.totals.exception_count:
        logger.warning(
            "Run %s: %d settlement line items do not reconcile",
            run_id, netting.totals.exception_count,
        )

    portal_sales = {portal: t.total_sale for portal, t in netting.by_portal.items()}
    refund_rates = (
        batch.refund_rates
        if batch.refund_rates is not None
        else refund_rates_by_portal(netting)
    )

    alerts = synthesize_alerts(
        config,
        datetime.combine(as_of, time()),
        cycles=cycles.items,
        fees=fees.items,
        margins=margins.items,
        chargebacks=batch.chargebacks,
        refund_rates=refund_rates,
        portal_sales=portal_sales,
    )

    health_inputs = batch.health_inputs or derive_health_inputs(
        netting,
        cycles,
        (
            chargebacks.total_lost_amount,
            sum(c.amount for c in batch.chargebacks),
        ),
        order_match,
    )
    health = compute_health_score(health_inputs, config.health_weights)

    summary = RunSummary(
        run_id=run_id,
        as_of=as_of,
        total_alerts=alerts.total,
        by_type=alerts.by_type,
        by_severity=alerts.by_severity,
        rejected_count=len(rejected),
        exception_count=netting.totals.exception_count,
        health_score=health.score,
        health_status=health.status,
    )

    logger.info(
        "Run %s complete: %d alerts (critical=%d, high=%d), health %d (%s)",
        run_id,
        alerts.total,
        alerts.by_severity[Severity.CRITICAL],
        alerts.by_severity[Severity.HIGH],
        health.score,
        health.status.value,
    )

    return ReconciliationRun(
        summary=summary,
        netting=netting,
        margins=margins,
        fees=fees,
        cycles=cycles,
        chargebacks=chargebacks,
        order_match=order_match,
        payouts=payouts,
        landing_costs=landing_costs,
        alerts=alerts,
        health=health,
        rejected=rejected,
    )


def reject_out(schema: str, r: RejectedRecord) -> RejectOut:
    return RejectOut(
        schema_name=schema,
        index=r.index,
        reason_code=r.reason_code,
        field_names=[e.field for e in r.errors],
        messages=[e.message for e in r.errors],
    )


def reconcile_raw(request: RunRequest, config: EngineConfig, as_of: date) -> ReconciliationRun:
    """Normalize raw records, then run the full reconciliation.

    Rejected records are excluded from computation and reported in
    `ReconciliationRun.rejected`.
    """
    typed: dict[str, tuple] = {}
    rejected: list[RejectOut] = []
    for field_name, schema in RAW_SCHEMAS.items():
        result = normalize_records(getattr(request, field_name), schema)
        typed[field_name] = tuple(result.valid)
        rejected.extend(reject_out(schema, r) for r in result.rejected)

    if rejected:
        logger.warning("Excluded %d malformed records from the run", len(rejected))

    batch = ReconciliationBatch(
        **typed,
        refund_rates=request.refund_rates,
        health_inputs=request.health_inputs,
    )
    return run_full_reconciliation(batch, config, as_of, rejected=tuple(rejected))
