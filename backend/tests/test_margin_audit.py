"""Margin audit tests."""

import pytest

from settlement_engine.config import build_engine_config
from settlement_engine.schemas.common import MarginClassification, MarginTrend
from settlement_engine.schemas.price_audit import SortState
from settlement_engine.services.margin_audit import (
    DEFAULT_SORT,
    audit_margins,
    audit_record,
    next_sort_state,
    sort_audited,
)

from factories import make_price_audit


@pytest.mark.engine
class TestAuditRecord:

    def test_drop_above_threshold_is_warning(self, config):
        """expected 28.0, actual 22.1 -> drop 5.9 -> Warning."""
        audited = audit_record(make_price_audit(), config)
        assert audited.margin_drop == 5.9
        assert audited.classification == MarginClassification.WARNING

    def test_drop_exactly_at_threshold_is_warning(self, config):
        audited = audit_record(
            make_price_audit(expected_margin_pct=25.0, actual_margin_pct=22.0), config,
        )
        assert audited.margin_drop == 3.0
        assert audited.classification == MarginClassification.WARNING

    def test_small_drop_is_healthy(self, config):
        audited = audit_record(
            make_price_audit(expected_margin_pct=25.0, actual_margin_pct=23.5), config,
        )
        assert audited.classification == MarginClassification.HEALTHY

    def test_margin_gain_is_healthy(self, config):
        audited = audit_record(
            make_price_audit(expected_margin_pct=20.0, actual_margin_pct=24.0), config,
        )
        assert audited.margin_drop == -4.0
        assert audited.classification == MarginClassification.HEALTHY

    def test_threshold_is_configurable(self):
        strict = build_engine_config(margin_drop_threshold_pct=6.0)
        assert audit_record(make_price_audit(), strict).classification == MarginClassification.HEALTHY

    def test_price_mismatch_is_independent_of_margin(self, config):
        audited = audit_record(
            make_price_audit(
                portal_selling_price=1399, expected_margin_pct=25.0, actual_margin_pct=25.0,
            ),
            config,
        )
        assert audited.price_mismatch is True
        assert audited.classification == MarginClassification.HEALTHY

    def test_trend_against_previous_snapshot(self, config):
        down = audit_record(make_price_audit(previous_margin_pct=26.0), config)
        assert down.period_change == -3.9
        assert down.trend == MarginTrend.DOWN

        stable = audit_record(make_price_audit(previous_margin_pct=22.5), config)
        assert stable.trend == MarginTrend.STABLE

        assert audit_record(make_price_audit(), config).trend is None


@pytest.mark.engine
class TestAuditMargins:

    def test_counts(self, config):
        records = [
            make_price_audit(sku_id="SKU-1"),
            make_price_audit(sku_id="SKU-2", expected_margin_pct=20.0, actual_margin_pct=19.5),
            make_price_audit(sku_id="SKU-3", portal_selling_price=1399),
        ]
        result = audit_margins(records, config)
        assert result.audited_count == 3
        assert result.margin_drop_count == 2
        assert result.healthy_count == 1
        assert result.price_mismatch_count == 1
        assert [w.record.sku_id for w in result.warnings] == ["SKU-1", "SKU-3"]

    def test_portal_filter(self, config):
        records = [
            make_price_audit(sku_id="SKU-1", portal="Amazon"),
            make_price_audit(sku_id="SKU-2", portal="Flipkart"),
        ]
        result = audit_margins(records, config, portal="Flipkart")
        assert result.audited_count == 1
        assert result.items[0].record.sku_id == "SKU-2"


@pytest.mark.engine
class TestSorting:

    def _audited(self, config):
        records = [
            make_price_audit(sku_id="SKU-C", product_name="Saree", expected_margin_pct=30.0, actual_margin_pct=20.0),
            make_price_audit(sku_id="SKU-B", product_name="kurta", expected_margin_pct=28.0, actual_margin_pct=22.1),
            make_price_audit(sku_id="SKU-A", product_name="Dupatta", expected_margin_pct=28.0, actual_margin_pct=22.1),
        ]
        return [audit_record(r, config) for r in records]

    def test_default_is_margin_drop_descending_ties_on_sku(self, config):
        ordered = sort_audited(self._audited(config), DEFAULT_SORT)
        assert [a.record.sku_id for a in ordered] == ["SKU-C", "SKU-A", "SKU-B"]

    def test_text_columns_sort_case_insensitively(self, config):
        ordered = sort_audited(self._audited(config), SortState(key="product_name", direction="asc"))
        assert [a.record.product_name for a in ordered] == ["Dupatta", "kurta", "Saree"]

    def test_same_key_toggles_direction(self):
        state = next_sort_state(DEFAULT_SORT, "margin_drop")
        assert state == SortState(key="margin_drop", direction="asc")
        assert next_sort_state(state, "margin_drop").direction == "desc"

    def test_new_key_starts_ascending(self):
        assert next_sort_state(DEFAULT_SORT, "mrp") == SortState(key="mrp", direction="asc")
        assert next_sort_state(None, "margin_drop") == DEFAULT_SORT
