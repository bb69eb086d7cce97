"""Risk alert synthesizer — turn module outputs into severity-graded alerts.

Severity is table driven: each alert type owns an ordered ladder of bands
in EngineConfig.severity_bands (highest threshold first).  The first band
the value satisfies decides the severity; no matching band means no alert.

    settlement_delay   value = delay days       (late cycles only; a
                                                 critical_delay is always critical,
                                                 a delayed cycle at most high)
    commission_spike   value = change pct       (alerting fee rows only)
    margin_leakage     value = margin drop      (Warning rows only)
    high_refund_rate   value = refund ratio     (above refund_rate_threshold)
    chargeback_loss    value = amount           (lost chargebacks only)

Alerts are ordered critical first; input order is kept within a severity.
Timestamps come from the caller's `as_of`, never the clock.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime

from settlement_engine.config import EngineConfig
from settlement_engine.schemas.alert import AlertSynthesis, RiskAlert
from settlement_engine.schemas.chargeback import Chargeback
from settlement_engine.schemas.common import (
    AlertType,
    ChargebackStatus,
    DelayStatus,
    MarginClassification,
    Severity,
)
from settlement_engine.schemas.cycle import TrackedCycle
from settlement_engine.schemas.fee import FeeVariation
from settlement_engine.schemas.price_audit import AuditedPrice

SEVERITY_RANK = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
}


def classify_severity(config: EngineConfig, alert_type: AlertType, value: float) -> Severity | None:
    """Walk the alert type's bands top-down; None when no band matches."""
    for band in config.bands_for(alert_type):
        if band.matches(value):
            return band.severity
    return None


def _money(config: EngineConfig, amount: int) -> str:
    return f"{config.currency_symbol}{amount:,}"


# ─────────────────────────────────────────────────────────────
# Settlement delays
# ─────────────────────────────────────────────────────────────

def alerts_for_cycles(
    cycles: Iterable[TrackedCycle],
    config: EngineConfig,
    as_of: datetime,
) -> list[RiskAlert]:
    alerts = []
    for t in cycles:
        if t.status == DelayStatus.ON_TIME:
            continue
        if t.status == DelayStatus.CRITICAL_DELAY:
            severity = Severity.CRITICAL
        else:
            severity = classify_severity(config, AlertType.SETTLEMENT_DELAY, t.delay_days)
            # only a critical_delay status is critical
            if severity == Severity.CRITICAL:
                severity = Severity.HIGH
        if severity is None:
            continue

        c = t.cycle
        amount = _money(config, c.amount)
        if t.is_paid:
            title = f"{c.portal} settlement paid {t.delay_days} days late"
            settled = f"was settled on {c.actual_date:%b %d}"
            impact = f"{amount} paid late"
        else:
            title = f"{c.portal} settlement overdue by {t.delay_days} days"
            settled = "has not been settled"
            impact = f"{amount} at risk"
        if t.status == DelayStatus.CRITICAL_DELAY:
            title = f"{title} (critical delay)"

        alerts.append(RiskAlert(
            id=f"{AlertType.SETTLEMENT_DELAY.value}:{c.batch_id}",
            type=AlertType.SETTLEMENT_DELAY,
            severity=severity,
            portal=c.portal,
            title=title,
            description=(
                f"Batch {c.batch_id} ({c.cycle_type.value}) worth {amount} {settled}. "
                f"Expected on {c.expected_date:%b %d}."
            ),
            impact=impact,
            impact_amount=c.amount,
            timestamp=as_of,
            entity_refs={"batch_id": c.batch_id},
        ))
    return alerts


# ─────────────────────────────────────────────────────────────
# Commission spikes
# ─────────────────────────────────────────────────────────────

def alerts_for_fees(
    fees: Iterable[FeeVariation],
    config: EngineConfig,
    as_of: datetime,
    portal_sales: Mapping[str, int] | None = None,
) -> list[RiskAlert]:
    """`portal_sales` (gross sale per portal) lets the alert estimate the
    extra commission the change costs on that volume."""
    portal_sales = portal_sales or {}
    alerts = []
    for f in fees:
        if not f.alert:
            continue
        severity = classify_severity(config, AlertType.COMMISSION_SPIKE, f.change_pct)
        if severity is None:
            continue

        r = f.record
        sales = portal_sales.get(r.portal)
        if sales:
            impact_amount = round(sales * f.change_pct / 100)
            impact = f"Est. {_money(config, impact_amount)} extra commission"
        else:
            impact_amount = None
            impact = f"{f.change_pct:+.1f} pts on {r.category}"

        alerts.append(RiskAlert(
            id=f"{AlertType.COMMISSION_SPIKE.value}:{r.portal}:{r.category}",
            type=AlertType.COMMISSION_SPIKE,
            severity=severity,
            portal=r.portal,
            title=f"{r.portal} {r.category} commission up {f.change_pct:+.1f}%",
            description=(
                f"{r.category} category commission changed from "
                f"{r.historical_commission_pct:g}% to {r.current_commission_pct:g}%."
            ),
            impact=impact,
            impact_amount=impact_amount,
            timestamp=as_of,
            entity_refs={"portal": r.portal, "category": r.category},
        ))
    return alerts


# ─────────────────────────────────────────────────────────────
# Margin leakage
# ─────────────────────────────────────────────────────────────

def alerts_for_margins(
    audited: Iterable[AuditedPrice],
    config: EngineConfig,
    as_of: datetime,
) -> list[RiskAlert]:
    alerts = []
    for a in audited:
        if a.classification != MarginClassification.WARNING:
            continue
        severity = classify_severity(config, AlertType.MARGIN_LEAKAGE, a.margin_drop)
        if severity is None:
            continue

        r = a.record
        per_unit = round(r.portal_selling_price * a.margin_drop / 100)
        description = (
            f"{r.sku_id} margin fell from {r.expected_margin_pct:g}% to "
            f"{r.actual_margin_pct:g}% on {r.portal}."
        )
        if a.price_mismatch:
            description += (
                f" Portal price {_money(config, r.portal_selling_price)} differs from "
                f"selling price {_money(config, r.selling_price)}."
            )

        alerts.append(RiskAlert(
            id=f"{AlertType.MARGIN_LEAKAGE.value}:{r.portal}:{r.sku_id}",
            type=AlertType.MARGIN_LEAKAGE,
            severity=severity,
            portal=r.portal,
            title=f"{r.product_name} margin dropped {a.margin_drop:.1f}%",
            description=description,
            impact=f"{_money(config, per_unit)} per unit",
            impact_amount=per_unit,
            timestamp=as_of,
            entity_refs={"sku_id": r.sku_id},
        ))
    return alerts


# ─────────────────────────────────────────────────────────────
# Refund rate
# ─────────────────────────────────────────────────────────────

def alerts_for_refund_rates(
    refund_rates: Mapping[str, float],
    config: EngineConfig,
    as_of: datetime,
    portal_sales: Mapping[str, int] | None = None,
) -> list[RiskAlert]:
    portal_sales = portal_sales or {}
    alerts = []
    for portal, ratio in refund_rates.items():
        if ratio <= config.refund_rate_threshold:
            continue
        severity = classify_severity(config, AlertType.HIGH_REFUND_RATE, ratio)
        if severity is None:
            continue

        sales = portal_sales.get(portal)
        impact_amount = round(sales * ratio) if sales else None
        impact = (
            f"{_money(config, impact_amount)} refunded"
            if impact_amount is not None
            else f"{ratio:.1%} of sales refunded"
        )

        alerts.append(RiskAlert(
            id=f"{AlertType.HIGH_REFUND_RATE.value}:{portal}",
            type=AlertType.HIGH_REFUND_RATE,
            severity=severity,
            portal=portal,
            title=f"{portal} refund rate exceeds {config.refund_rate_threshold:.0%}",
            description=(
                f"Refunds are {ratio:.1%} of sales on {portal}, "
                f"impacting net settlement."
            ),
            impact=impact,
            impact_amount=impact_amount,
            timestamp=as_of,
            entity_refs={"portal": portal},
        ))
    return alerts


# ─────────────────────────────────────────────────────────────
# Chargeback losses
# ─────────────────────────────────────────────────────────────

def alerts_for_chargebacks(
    chargebacks: Iterable[Chargeback],
    config: EngineConfig,
    as_of: datetime,
) -> list[RiskAlert]:
    alerts = []
    for c in chargebacks:
        if c.status != ChargebackStatus.LOST:
            continue
        severity = classify_severity(config, AlertType.CHARGEBACK_LOSS, c.amount)
        if severity is None:
            continue

        amount = _money(config, c.amount)
        alerts.append(RiskAlert(
            id=f"{AlertType.CHARGEBACK_LOSS.value}:{c.id}",
            type=AlertType.CHARGEBACK_LOSS,
            severity=severity,
            portal=c.portal,
            title=f"{amount} lost in chargeback {c.id}",
            description=(
                f"Dispute on order {c.order_id} ({c.reason}) was lost on {c.portal}, "
                f"filed {c.filed_date:%b %d}."
            ),
            impact=f"{amount} lost",
            impact_amount=c.amount,
            timestamp=as_of,
            entity_refs={"chargeback_id": c.id, "order_id": c.order_id},
        ))
    return alerts


# ─────────────────────────────────────────────────────────────
# ORCHESTRATOR
# ─────────────────────────────────────────────────────────────

def synthesize_alerts(
    config: EngineConfig,
    as_of: datetime,
    cycles: Iterable[TrackedCycle] = (),
    fees: Iterable[FeeVariation] = (),
    margins: Iterable[AuditedPrice] = (),
    chargebacks: Iterable[Chargeback] = (),
    refund_rates: Mapping[str, float] | None = None,
    portal_sales: Mapping[str, int] | None = None,
) -> AlertSynthesis:
    """Run every alert rule and count the results by severity and type."""
    alerts: list[RiskAlert] = []
    alerts.extend(alerts_for_cycles(cycles, config, as_of))
    alerts.extend(alerts_for_fees(fees, config, as_of, portal_sales))
    alerts.extend(alerts_for_margins(margins, config, as_of))
    alerts.extend(alerts_for_refund_rates(refund_rates or {}, config, as_of, portal_sales))
    alerts.extend(alerts_for_chargebacks(chargebacks, config, as_of))

    alerts.sort(key=lambda a: SEVERITY_RANK[a.severity])

    by_severity = {s: 0 for s in Severity}
    by_type = {t: 0 for t in AlertType}
    for a in alerts:
        by_severity[a.severity] += 1
        by_type[a.type] += 1

    return AlertSynthesis(alerts=tuple(alerts), by_severity=by_severity, by_type=by_type)
