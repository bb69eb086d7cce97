"""Fee variation tests."""

import pytest

from settlement_engine.services.fee_variation import evaluate_fee_variation, evaluate_fee_variations

from factories import make_fee


@pytest.mark.engine
class TestFeeVariation:

    def test_small_change_does_not_alert(self, config):
        """+0.5 points stays under the 1.0 spike threshold."""
        fee = evaluate_fee_variation(make_fee(current_commission_pct=12.5), config)
        assert fee.change_pct == 0.5
        assert fee.alert is False

    def test_spike_alerts(self, config):
        """+1.7 points is a spike."""
        fee = evaluate_fee_variation(make_fee(), config)
        assert fee.change_pct == 1.7
        assert fee.alert is True

    def test_change_exactly_at_threshold_does_not_alert(self, config):
        fee = evaluate_fee_variation(make_fee(current_commission_pct=13.0), config)
        assert fee.change_pct == 1.0
        assert fee.alert is False

    def test_commission_drop_never_alerts(self, config):
        fee = evaluate_fee_variation(make_fee(current_commission_pct=9.0), config)
        assert fee.change_pct == -3.0
        assert fee.alert is False

    def test_batch_summary(self, config):
        result = evaluate_fee_variations(
            [
                make_fee(category="Apparel"),
                make_fee(category="Footwear", current_commission_pct=15.0),
                make_fee(category="Beauty", current_commission_pct=12.2),
            ],
            config,
        )
        assert result.alert_count == 2
        assert result.largest_spike.record.category == "Footwear"
        assert result.largest_spike.change_pct == 3.0

    def test_no_alerts_means_no_largest_spike(self, config):
        result = evaluate_fee_variations([make_fee(current_commission_pct=12.0)], config)
        assert result.alert_count == 0
        assert result.largest_spike is None
