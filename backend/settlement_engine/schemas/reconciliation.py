"""Pydantic schemas for a full reconciliation run."""

from datetime import date
from typing import Any

from settlement_engine.schemas.alert import AlertSynthesis
from settlement_engine.schemas.chargeback import Chargeback, ChargebackSummary
from settlement_engine.schemas.common import AlertType, EngineRecord, HealthStatus, Severity
from settlement_engine.schemas.cycle import CycleSummary, SettlementCycle
from settlement_engine.schemas.fee import FeeVariationRecord, FeeVariationResult
from settlement_engine.schemas.health import HealthScoreInputs, HealthScoreResult
from settlement_engine.schemas.landing_cost import LandingCostRecord, LandingCostSummary
from settlement_engine.schemas.order_match import OrderMatchRecord, OrderMatchSummary
from settlement_engine.schemas.payout import PayoutRecord, PayoutSummary
from settlement_engine.schemas.price_audit import MarginAuditResult, PriceAuditRecord
from settlement_engine.schemas.settlement import NettingResult, SettlementLineItem


class ReconciliationBatch(EngineRecord):
    """Typed input snapshot for one run."""
    settlements: tuple[SettlementLineItem, ...] = ()
    price_audits: tuple[PriceAuditRecord, ...] = ()
    fee_variations: tuple[FeeVariationRecord, ...] = ()
    settlement_cycles: tuple[SettlementCycle, ...] = ()
    chargebacks: tuple[Chargeback, ...] = ()
    order_matches: tuple[OrderMatchRecord, ...] = ()
    payouts: tuple[PayoutRecord, ...] = ()
    landing_costs: tuple[LandingCostRecord, ...] = ()
    # portal -> refund ratio (0..1); derived from netting totals when absent
    refund_rates: dict[str, float] | None = None
    # explicit health inputs from upstream; derived from the run when absent
    health_inputs: HealthScoreInputs | None = None


class RunRequest(EngineRecord):
    """Raw run request.  Records are validated by the normalizer, so a bad
    row is rejected on its own instead of failing the whole request."""
    settlements: list[Any] = []
    price_audits: list[Any] = []
    fee_variations: list[Any] = []
    settlement_cycles: list[Any] = []
    chargebacks: list[Any] = []
    order_matches: list[Any] = []
    payouts: list[Any] = []
    landing_costs: list[Any] = []
    refund_rates: dict[str, float] | None = None
    health_inputs: HealthScoreInputs | None = None
    as_of: date | None = None


class RejectOut(EngineRecord):
    schema_name: str
    index: int
    reason_code: str
    field_names: list[str]
    messages: list[str]


class RunSummary(EngineRecord):
    """Summary of a reconciliation run."""
    run_id: str
    as_of: date
    total_alerts: int
    by_type: dict[AlertType, int]
    by_severity: dict[Severity, int]
    rejected_count: int
    exception_count: int
    health_score: int
    health_status: HealthStatus


class ReconciliationRun(EngineRecord):
    summary: RunSummary
    netting: NettingResult
    margins: MarginAuditResult
    fees: FeeVariationResult
    cycles: CycleSummary
    chargebacks: ChargebackSummary
    order_match: OrderMatchSummary | None = None
    payouts: PayoutSummary | None = None
    landing_costs: LandingCostSummary | None = None
    alerts: AlertSynthesis
    health: HealthScoreResult
    rejected: tuple[RejectOut, ...] = ()


class NormalizeOut(EngineRecord):
    """Outcome of normalizing one raw batch against a single schema."""
    schema_name: str
    total_records: int
    valid_count: int
    rejected_count: int
    valid: list[dict[str, Any]]
    rejected: list[RejectOut]
