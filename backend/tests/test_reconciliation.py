"""Full reconciliation run tests."""

from datetime import date

import pytest

from settlement_engine.schemas.common import AlertType, HealthStatus, Severity
from settlement_engine.schemas.reconciliation import ReconciliationBatch, RunRequest
from settlement_engine.services.reconciliation import reconcile_raw, run_full_reconciliation

from factories import (
    AS_OF,
    make_chargeback,
    make_cycle,
    make_landing_cost,
    make_line_item,
    sample_batch,
)


@pytest.mark.engine
class TestReconcileRaw:
    """Normalizing and reconciling the sample batch."""

    def test_summary(self, config):
        run = reconcile_raw(RunRequest.model_validate(sample_batch()), config, AS_OF)
        summary = run.summary
        assert summary.as_of == AS_OF
        assert summary.total_alerts == 6
        assert summary.by_severity == {
            Severity.CRITICAL: 1, Severity.HIGH: 2, Severity.MEDIUM: 3, Severity.LOW: 0,
        }
        assert summary.by_type[AlertType.CHARGEBACK_LOSS] == 2
        assert summary.by_type[AlertType.HIGH_REFUND_RATE] == 1
        assert summary.rejected_count == 1
        assert summary.exception_count == 1

    def test_rejects_are_reported_and_excluded(self, config):
        run = reconcile_raw(RunRequest.model_validate(sample_batch()), config, AS_OF)
        [reject] = run.rejected
        assert reject.schema_name == "price_audit"
        assert reject.index == 1
        assert reject.reason_code == "INVALID_AMOUNT"
        assert reject.field_names == ["mrp"]
        assert run.margins.audited_count == 1

    def test_module_results(self, config):
        run = reconcile_raw(RunRequest.model_validate(sample_batch()), config, AS_OF)
        assert [n.line_item.id for n in run.netting.exceptions] == ["LI-2"]
        assert run.cycles.critical_count == 1
        assert run.cycles.amount_at_risk == 125000
        assert run.chargebacks.total_lost_amount == 7647
        assert run.fees.alert_count == 1
        assert run.order_match is None
        assert run.payouts is None
        assert run.landing_costs is None

    def test_alert_order(self, config):
        run = reconcile_raw(RunRequest.model_validate(sample_batch()), config, AS_OF)
        assert [a.id for a in run.alerts.alerts] == [
            "settlement_delay:B-1",
            "chargeback_loss:CB-1",
            "chargeback_loss:CB-2",
            "commission_spike:Flipkart:Apparel",
            "margin_leakage:Amazon:SKU-1",
            "high_refund_rate:Flipkart",
        ]
        # commission impact is estimated on the portal's gross sales
        assert run.alerts.alerts[3].impact_amount == 170

    def test_derived_health(self, config):
        """50% matched lines, 50% delayed cycles, 7647 of 10000 disputed lost."""
        run = reconcile_raw(RunRequest.model_validate(sample_batch()), config, AS_OF)
        inputs = run.health.inputs
        assert (inputs.matched_pct, inputs.mismatch_pct, inputs.delayed_pct) == (50.0, 50.0, 50.0)
        assert inputs.chargeback_loss_pct == 76.47
        assert run.health.score == 46
        assert run.health.status == HealthStatus.HIGH_RISK

    def test_explicit_health_inputs_win(self, config):
        raw = sample_batch()
        raw["healthInputs"] = {
            "matchedPct": 92, "mismatchPct": 3, "delayedPct": 10, "chargebackLossPct": 2,
        }
        run = reconcile_raw(RunRequest.model_validate(raw), config, AS_OF)
        assert run.summary.health_score == 94
        assert run.summary.health_status == HealthStatus.HEALTHY

    def test_landing_costs(self, config):
        raw = sample_batch()
        landing = make_landing_cost().model_dump(by_alias=True)
        raw["landingCosts"] = [landing, {**landing, "skuId": "BT-EP-102", "promotions": True}]
        run = reconcile_raw(RunRequest.model_validate(raw), config, AS_OF)
        assert run.landing_costs.product_count == 1
        assert run.landing_costs.items[0].landing_cost == 1669
        [reject] = [r for r in run.rejected if r.schema_name == "landing_cost"]
        assert reject.index == 1
        assert reject.reason_code == "INVALID_AMOUNT"
        assert reject.field_names == ["promotions"]

    def test_explicit_refund_rates_replace_derived(self, config):
        raw = sample_batch()
        raw["refundRates"] = {"Amazon": 0.05}
        run = reconcile_raw(RunRequest.model_validate(raw), config, AS_OF)
        assert run.summary.by_type[AlertType.HIGH_REFUND_RATE] == 0


@pytest.mark.engine
class TestRunFullReconciliation:

    def _batch(self) -> ReconciliationBatch:
        return ReconciliationBatch(
            settlements=(make_line_item(),),
            settlement_cycles=(make_cycle(days_late=3),),
            chargebacks=(make_chargeback(),),
        )

    def test_same_input_same_output(self, config):
        """Identical batch, config and date give an identical run."""
        first = run_full_reconciliation(self._batch(), config, AS_OF)
        second = run_full_reconciliation(self._batch(), config, AS_OF)
        assert first == second
        assert first.summary.run_id == second.summary.run_id

    def test_run_id_tracks_inputs(self, config):
        base = run_full_reconciliation(self._batch(), config, AS_OF)
        later = run_full_reconciliation(self._batch(), config, date(2024, 2, 11))
        assert base.summary.run_id != later.summary.run_id

    def test_empty_batch(self, config):
        run = run_full_reconciliation(ReconciliationBatch(), config, AS_OF)
        assert run.summary.total_alerts == 0
        assert run.health.inputs.matched_pct == 100.0
        assert run.health.score == 100
        assert run.health.status == HealthStatus.HEALTHY
