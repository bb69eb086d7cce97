"""Shared enums and base model for engine records."""

import enum
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError


def _not_bool(value):
    # lax int mode would read true/false as 1/0
    if isinstance(value, bool):
        raise PydanticCustomError("int_type", "Input should be a valid amount, not a boolean")
    return value


# Whole amount in currency minor units
Money = Annotated[int, BeforeValidator(_not_bool)]


class EngineRecord(BaseModel):
    """Immutable record.  Accepts camelCase (dashboard payloads) or snake_case keys."""
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        allow_inf_nan=False,
        coerce_numbers_to_str=True,
    )


class PaymentTiming(str, enum.Enum):
    PREVIOUS = "Previous"
    UPCOMING = "Upcoming"


class SettlementStatus(str, enum.Enum):
    SETTLED = "Settled"
    PENDING = "Pending"


class CycleType(str, enum.Enum):
    T7 = "T+7"
    T15 = "T+15"
    T30 = "T+30"


class DelayStatus(str, enum.Enum):
    ON_TIME = "on_time"
    DELAYED = "delayed"
    CRITICAL_DELAY = "critical_delay"


class ChargebackStatus(str, enum.Enum):
    INITIATED = "initiated"
    UNDER_REVIEW = "under_review"
    WON = "won"
    LOST = "lost"


class MarginClassification(str, enum.Enum):
    HEALTHY = "Healthy"
    WARNING = "Warning"


class MarginTrend(str, enum.Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class LandingMarginBand(str, enum.Enum):
    HIGH_MARGIN = "High Margin"
    MODERATE = "Moderate"
    LOW = "Low / Negative"


class OrderMatchStatus(str, enum.Enum):
    MATCHED = "matched"
    MISMATCH = "mismatch"


class AlertType(str, enum.Enum):
    SETTLEMENT_DELAY = "settlement_delay"
    COMMISSION_SPIKE = "commission_spike"
    MARGIN_LEAKAGE = "margin_leakage"
    HIGH_REFUND_RATE = "high_refund_rate"
    CHARGEBACK_LOSS = "chargeback_loss"


class Severity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class HealthStatus(str, enum.Enum):
    HEALTHY = "Healthy"
    MONITOR = "Monitor"
    HIGH_RISK = "High Risk"
