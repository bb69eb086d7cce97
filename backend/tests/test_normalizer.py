"""Record normalizer tests."""

import pytest

from settlement_engine.middleware.exceptions import UnknownSchemaError
from settlement_engine.schemas.common import ChargebackStatus, PaymentTiming
from settlement_engine.schemas.settlement import SettlementLineItem
from settlement_engine.services.normalizer import (
    INVALID_AMOUNT,
    INVALID_DATE,
    INVALID_NUMBER,
    INVALID_VALUE,
    MISSING_FIELD,
    NOT_A_RECORD,
    UNKNOWN_ENUM,
    normalize_records,
)


def raw_line_item(**overrides) -> dict:
    raw = {
        "id": "LI-1",
        "skuId": "SKU-1",
        "orderItemId": "OI-1",
        "orderId": "ORD-1",
        "portal": "Amazon",
        "batchId": "B-1",
        "paymentTiming": "Previous",
        "settlementStatus": "Settled",
        "saleAmount": 1000,
        "refundAmount": 0,
        "offerAmount": -200,
        "sellerShare": -100,
        "customerAddons": 0,
        "marketplaceFees": 0,
        "taxes": 18,
        "reportedNet": -282,
    }
    raw.update(overrides)
    return raw


@pytest.mark.engine
class TestNormalizeRecords:
    """Validating raw batches into typed records."""

    def test_camel_case_record_is_accepted(self):
        """Dashboard-style camelCase keys map onto the typed record."""
        result = normalize_records([raw_line_item()], "settlement_line_item")
        assert result.rejected == []
        assert len(result.valid) == 1
        item = result.valid[0]
        assert isinstance(item, SettlementLineItem)
        assert item.payment_timing == PaymentTiming.PREVIOUS
        assert item.reported_net == -282

    def test_snake_case_record_is_accepted(self):
        """Field names work as well as aliases."""
        raw = {
            "id": "CB-1", "order_id": "ORD-1", "portal": "Myntra", "amount": 3450,
            "reason": "Damaged", "status": "lost", "filed_date": "2024-01-15",
        }
        result = normalize_records([raw], "chargeback")
        assert len(result.valid) == 1
        assert result.valid[0].status == ChargebackStatus.LOST
        assert result.valid[0].responsible_user is None

    def test_numeric_strings_are_coerced(self):
        """Amounts supplied as numeric strings are parsed."""
        result = normalize_records([raw_line_item(saleAmount="1000")], "settlement_line_item")
        assert result.valid[0].sale_amount == 1000

    def test_missing_field(self):
        """An absent required field is MISSING_FIELD, named by field."""
        raw = raw_line_item()
        del raw["reportedNet"]
        result = normalize_records([raw], "settlement_line_item")
        assert result.valid == []
        rejected = result.rejected[0]
        assert rejected.reason_code == MISSING_FIELD
        assert rejected.errors[0].field == "reported_net"

    def test_blank_and_null_count_as_missing(self):
        """Blank strings and nulls in required fields are missing values."""
        result = normalize_records(
            [raw_line_item(portal="   "), raw_line_item(skuId=None)],
            "settlement_line_item",
        )
        assert [r.reason_code for r in result.rejected] == [MISSING_FIELD, MISSING_FIELD]
        assert [r.errors[0].field for r in result.rejected] == ["portal", "sku_id"]

    def test_non_numeric_amount(self):
        """A non-numeric money field is INVALID_AMOUNT."""
        result = normalize_records([raw_line_item(taxes="eighteen")], "settlement_line_item")
        assert result.rejected[0].reason_code == INVALID_AMOUNT
        assert result.rejected[0].errors[0].field == "taxes"

    def test_fractional_amount(self):
        """Money is whole minor units; a fraction is INVALID_AMOUNT."""
        result = normalize_records([raw_line_item(saleAmount=999.5)], "settlement_line_item")
        assert result.rejected[0].reason_code == INVALID_AMOUNT

    @pytest.mark.parametrize("flag", [True, False])
    def test_boolean_amount(self, flag):
        """true/false is not an amount, even though int(True) == 1."""
        result = normalize_records([raw_line_item(taxes=flag)], "settlement_line_item")
        assert result.valid == []
        assert result.rejected[0].reason_code == INVALID_AMOUNT
        assert result.rejected[0].errors[0].field == "taxes"

    def test_boolean_chargeback_amount(self):
        raw = {
            "id": "CB-1", "orderId": "ORD-1", "portal": "Myntra", "amount": True,
            "reason": "Damaged", "status": "lost", "filedDate": "2024-01-20",
        }
        result = normalize_records([raw], "chargeback")
        assert result.rejected[0].reason_code == INVALID_AMOUNT

    def test_non_numeric_percentage(self):
        """A non-numeric percentage is INVALID_NUMBER, not INVALID_AMOUNT."""
        raw = {
            "portal": "Flipkart", "category": "Apparel",
            "historicalCommissionPct": "n/a", "currentCommissionPct": 13.7,
        }
        result = normalize_records([raw], "fee_variation")
        assert result.rejected[0].reason_code == INVALID_NUMBER

    def test_unknown_enum(self):
        """An unrecognised enum value is UNKNOWN_ENUM."""
        result = normalize_records([raw_line_item(paymentTiming="Later")], "settlement_line_item")
        assert result.rejected[0].reason_code == UNKNOWN_ENUM
        assert result.rejected[0].errors[0].field == "payment_timing"

    def test_invalid_date(self):
        """An unparseable date is INVALID_DATE."""
        raw = {
            "batchId": "B-1", "portal": "Amazon", "cycleType": "T+7",
            "expectedDate": "31/02/2024", "amount": 1000,
        }
        result = normalize_records([raw], "settlement_cycle")
        assert result.rejected[0].reason_code == INVALID_DATE

    def test_negative_amount_violates_constraint(self):
        """A negative chargeback amount fails the constraint check."""
        raw = {
            "id": "CB-1", "orderId": "ORD-1", "portal": "Amazon", "amount": -10,
            "reason": "Fraud", "status": "initiated", "filedDate": "2024-01-15",
        }
        result = normalize_records([raw], "chargeback")
        assert result.rejected[0].reason_code == INVALID_VALUE

    def test_non_mapping_item(self):
        """Items that are not mappings are NOT_A_RECORD."""
        result = normalize_records(["LI-1,SKU-1", 42], "settlement_line_item")
        assert [r.reason_code for r in result.rejected] == [NOT_A_RECORD, NOT_A_RECORD]

    def test_bad_record_does_not_sink_the_batch(self):
        """Valid records survive next to a rejected one; indexes are kept."""
        batch = [
            raw_line_item(id="LI-1"),
            raw_line_item(id="LI-2", saleAmount="x"),
            raw_line_item(id="LI-3"),
        ]
        result = normalize_records(batch, "settlement_line_item")
        assert result.total_records == 3
        assert [i.id for i in result.valid] == ["LI-1", "LI-3"]
        assert [r.index for r in result.rejected] == [1]

    def test_unknown_schema(self):
        """An unknown schema tag raises a typed error."""
        with pytest.raises(UnknownSchemaError) as exc_info:
            normalize_records([], "invoice")
        assert exc_info.value.error_code == "UNKNOWN_SCHEMA"
        assert exc_info.value.status_code == 400
