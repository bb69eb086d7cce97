"""Record normalizer — validates raw records into typed engine entities.

Each schema tag maps to one pydantic model.  Every raw record is validated
independently; a bad record lands in `rejected` with a reason code and the
rest of the batch carries on.

Reason codes:
    MISSING_FIELD   required field absent, null or blank
    INVALID_AMOUNT  monetary field is non-numeric, boolean or not a whole amount
    INVALID_NUMBER  percentage / count field is non-numeric
    UNKNOWN_ENUM    enum field holds an unrecognised value
    INVALID_DATE    date field failed to parse
    NOT_A_RECORD    the raw item is not a mapping
    INVALID_VALUE   any other constraint (negative amount, ...)
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ValidationError

from settlement_engine.middleware.exceptions import UnknownSchemaError
from settlement_engine.schemas.chargeback import Chargeback
from settlement_engine.schemas.cycle import SettlementCycle
from settlement_engine.schemas.fee import FeeVariationRecord
from settlement_engine.schemas.landing_cost import LandingCostRecord
from settlement_engine.schemas.order_match import OrderMatchRecord
from settlement_engine.schemas.payout import PayoutRecord
from settlement_engine.schemas.price_audit import PriceAuditRecord
from settlement_engine.schemas.settlement import SettlementLineItem

logger = logging.getLogger("settlement_engine.normalizer")

SCHEMAS: dict[str, type[BaseModel]] = {
    "settlement_line_item": SettlementLineItem,
    "price_audit": PriceAuditRecord,
    "fee_variation": FeeVariationRecord,
    "settlement_cycle": SettlementCycle,
    "chargeback": Chargeback,
    "order_match": OrderMatchRecord,
    "payout": PayoutRecord,
    "landing_cost": LandingCostRecord,
}

MONEY_FIELDS = frozenset({
    # settlement line items
    "sale_amount", "refund_amount", "offer_amount", "seller_share",
    "customer_addons", "marketplace_fees", "taxes", "reported_net",
    # price audit
    "mrp", "selling_price", "portal_selling_price",
    # cycles / chargebacks
    "amount",
    # payout split
    "marketplace_price", "commission", "platform_fees", "shipping_fees",
    "gst", "net_payout",
    # landing cost
    "shipping_fee", "payment_gateway_fee", "promotions",
})

MISSING_FIELD = "MISSING_FIELD"
INVALID_AMOUNT = "INVALID_AMOUNT"
INVALID_NUMBER = "INVALID_NUMBER"
UNKNOWN_ENUM = "UNKNOWN_ENUM"
INVALID_DATE = "INVALID_DATE"
NOT_A_RECORD = "NOT_A_RECORD"
INVALID_VALUE = "INVALID_VALUE"


@dataclass(frozen=True)
class FieldError:
    field: str
    code: str
    message: str


@dataclass(frozen=True)
class RejectedRecord:
    index: int
    reason_code: str
    errors: list[FieldError]
    raw: Any = None


@dataclass
class NormalizationResult:
    schema: str
    valid: list[Any] = field(default_factory=list)
    rejected: list[RejectedRecord] = field(default_factory=list)
    total_records: int = 0


def _field_name(model: type[BaseModel], loc: tuple) -> str:
    """Map a pydantic error location (alias or name) back to the field name."""
    if not loc:
        return ""
    head = str(loc[0])
    if head in model.model_fields:
        return head
    for name, info in model.model_fields.items():
        if info.alias == head:
            return name
    return head


def _reason_code(error_type: str, field_name: str) -> str:
    if error_type == "missing":
        return MISSING_FIELD
    if error_type.startswith(("date", "datetime")):
        return INVALID_DATE
    if error_type in ("enum", "literal_error"):
        return UNKNOWN_ENUM
    if error_type.startswith("int_"):
        return INVALID_AMOUNT if field_name in MONEY_FIELDS else INVALID_NUMBER
    if error_type.startswith("float_") or error_type == "finite_number":
        return INVALID_AMOUNT if field_name in MONEY_FIELDS else INVALID_NUMBER
    return INVALID_VALUE


def _strip_blanks(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Drop null / blank values so required fields report as missing and
    optional ones fall back to their defaults."""
    cleaned = {}
    for key, value in raw.items():
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        cleaned[key] = value
    return cleaned


def _validate_one(model: type[BaseModel], index: int, raw: Any) -> tuple[Any | None, RejectedRecord | None]:
    if not isinstance(raw, Mapping):
        return None, RejectedRecord(
            index=index,
            reason_code=NOT_A_RECORD,
            errors=[FieldError(field="", code=NOT_A_RECORD, message="record must be a mapping")],
            raw=raw,
        )

    try:
        return model.model_validate(_strip_blanks(raw)), None
    except ValidationError as exc:
        errors = []
        for err in exc.errors():
            name = _field_name(model, err["loc"])
            errors.append(FieldError(
                field=name,
                code=_reason_code(err["type"], name),
                message=err["msg"],
            ))
        return None, RejectedRecord(
            index=index,
            reason_code=errors[0].code,
            errors=errors,
            raw=dict(raw),
        )


def normalize_records(raw_records: Iterable[Any], schema: str) -> NormalizationResult:
    """Validate a batch of raw records against the model registered for `schema`.

    Returns both the typed records and the rejects; never raises for bad
    records.  An unknown schema tag raises UnknownSchemaError.
    """
    model = SCHEMAS.get(schema)
    if model is None:
        raise UnknownSchemaError(schema, sorted(SCHEMAS))

    result = NormalizationResult(schema=schema)

    for index, raw in enumerate(raw_records):
        result.total_records += 1
        record, rejected = _validate_one(model, index, raw)
        if rejected is not None:
            logger.debug(
                "Rejected %s record #%d: %s (%s)",
                schema, index, rejected.reason_code,
                ", ".join(e.field or "-" for e in rejected.errors),
            )
            result.rejected.append(rejected)
        else:
            result.valid.append(record)

    if result.rejected:
        logger.warning(
            "Normalized %s batch: %d valid, %d rejected",
            schema, len(result.valid), len(result.rejected),
        )
    return result
