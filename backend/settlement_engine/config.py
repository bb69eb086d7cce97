"""Engine configuration.

Two layers:

    Settings      process-level settings read from the environment / .env
                  (RECON_ prefix), mirrors the scalar thresholds below.
    EngineConfig  immutable rule configuration handed to every engine call.
                  Built once per invocation and never mutated, so the same
                  batch + config always produces the same result.

Invalid configuration fails fast with ConfigurationError before any batch
is processed.
"""

import math
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from settlement_engine.middleware.exceptions import ConfigurationError
from settlement_engine.schemas.common import AlertType, Severity


class SeverityBand(BaseModel):
    """One rung of a severity ladder: value >= min_value (or > when strict)."""
    model_config = ConfigDict(frozen=True)

    min_value: float
    severity: Severity
    strict: bool = False

    def matches(self, value: float) -> bool:
        if self.strict:
            return value > self.min_value
        return value >= self.min_value


class HealthWeights(BaseModel):
    model_config = ConfigDict(frozen=True)

    matched: float = Field(0.40, ge=0)
    mismatch: float = Field(0.25, ge=0)
    delayed: float = Field(0.20, ge=0)
    chargeback_loss: float = Field(0.15, ge=0)

    @model_validator(mode="after")
    def weights_sum_to_one(self) -> "HealthWeights":
        total = self.matched + self.mismatch + self.delayed + self.chargeback_loss
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"health weights must sum to 1.0 (got {total:.4f})")
        return self


LARGE_CHARGEBACK_LOSS_AMOUNT = 5000


def _chargeback_bands(large_loss_amount) -> tuple[dict, ...]:
    # Left as plain dicts so a bad amount is reported by field validation.
    return (
        {"min_value": large_loss_amount, "severity": Severity.CRITICAL, "strict": True},
        {"min_value": 0, "severity": Severity.HIGH},
    )


def _default_bands() -> dict[AlertType, tuple[SeverityBand, ...]]:
    return {
        AlertType.SETTLEMENT_DELAY: (
            SeverityBand(min_value=5, severity=Severity.CRITICAL),
            SeverityBand(min_value=3, severity=Severity.HIGH),
        ),
        AlertType.COMMISSION_SPIKE: (
            SeverityBand(min_value=2.5, severity=Severity.HIGH),
            SeverityBand(min_value=1.5, severity=Severity.MEDIUM),
            SeverityBand(min_value=0, severity=Severity.LOW),
        ),
        AlertType.MARGIN_LEAKAGE: (
            SeverityBand(min_value=8, severity=Severity.HIGH),
            SeverityBand(min_value=5, severity=Severity.MEDIUM),
            SeverityBand(min_value=0, severity=Severity.LOW),
        ),
        AlertType.CHARGEBACK_LOSS: tuple(
            SeverityBand(**band) for band in _chargeback_bands(LARGE_CHARGEBACK_LOSS_AMOUNT)
        ),
        AlertType.HIGH_REFUND_RATE: (
            SeverityBand(min_value=0.25, severity=Severity.HIGH),
            SeverityBand(min_value=0, severity=Severity.MEDIUM),
        ),
    }


class EngineConfig(BaseModel):
    """Every threshold, band and weight the engine uses, in one place."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    margin_drop_threshold_pct: float = Field(3.0, ge=0)
    commission_spike_threshold_pct: float = Field(1.0, ge=0)

    # Delay bands: < delayed_after_days -> on_time,
    # < critical_delay_after_days -> delayed, otherwise critical_delay
    delayed_after_days: int = Field(1, ge=1)
    critical_delay_after_days: int = Field(5, ge=2)

    health_weights: HealthWeights = HealthWeights()
    severity_bands: dict[AlertType, tuple[SeverityBand, ...]] = Field(default_factory=_default_bands)

    # Lost chargebacks above this amount are critical.  Explicit
    # chargeback_loss bands in severity_bands take precedence.
    large_chargeback_loss_amount: int = Field(LARGE_CHARGEBACK_LOSS_AMOUNT, ge=0)
    refund_rate_threshold: float = Field(0.15, ge=0)
    margin_trend_stable_band_pct: float = Field(1.0, ge=0)
    landing_high_margin_pct: float = 35.0
    landing_moderate_margin_pct: float = 15.0
    currency_symbol: str = "₹"

    @model_validator(mode="before")
    @classmethod
    def chargeback_bands_from_amount(cls, data):
        if not isinstance(data, dict):
            return data
        bands = data.get("severity_bands")
        if bands is None:
            bands = _default_bands()
        elif AlertType.CHARGEBACK_LOSS in bands or AlertType.CHARGEBACK_LOSS.value in bands:
            return data
        else:
            bands = dict(bands)
        amount = data.get("large_chargeback_loss_amount", LARGE_CHARGEBACK_LOSS_AMOUNT)
        bands[AlertType.CHARGEBACK_LOSS] = _chargeback_bands(amount)
        return {**data, "severity_bands": bands}

    @field_validator("severity_bands")
    @classmethod
    def bands_descending(cls, v: dict) -> dict:
        for alert_type, bands in v.items():
            if not bands:
                raise ValueError(f"{alert_type.value}: at least one severity band is required")
            mins = [b.min_value for b in bands]
            if mins != sorted(mins, reverse=True):
                raise ValueError(f"{alert_type.value}: bands must be ordered by descending min_value")
            if any(m < 0 for m in mins):
                raise ValueError(f"{alert_type.value}: band thresholds must be non-negative")
        missing = set(AlertType) - set(v)
        if missing:
            names = ", ".join(sorted(m.value for m in missing))
            raise ValueError(f"missing severity bands for: {names}")
        return v

    @model_validator(mode="after")
    def bands_ordered(self) -> "EngineConfig":
        if self.critical_delay_after_days <= self.delayed_after_days:
            raise ValueError(
                "critical_delay_after_days must be greater than delayed_after_days"
            )
        if self.landing_moderate_margin_pct >= self.landing_high_margin_pct:
            raise ValueError(
                "landing_moderate_margin_pct must be below landing_high_margin_pct"
            )
        return self

    def bands_for(self, alert_type: AlertType) -> tuple[SeverityBand, ...]:
        return self.severity_bands[alert_type]


def _configuration_error(what: str, exc: ValidationError) -> ConfigurationError:
    problems = [
        {
            "field": ".".join(str(loc) for loc in err["loc"]) or "config",
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    return ConfigurationError(
        f"Invalid {what}: " + "; ".join(f"{p['field']}: {p['message']}" for p in problems),
        details=problems,
    )


def build_engine_config(**overrides) -> EngineConfig:
    """Validate overrides into an EngineConfig or raise ConfigurationError."""
    try:
        return EngineConfig(**overrides)
    except ValidationError as exc:
        raise _configuration_error("engine configuration", exc) from exc


class Settings(BaseSettings):
    # App
    environment: str = "development"
    debug: bool = True
    allowed_origins: str = "http://localhost:3000,http://localhost:5173"
    log_level: str = "INFO"

    # Engine thresholds
    margin_drop_threshold_pct: float = 3.0
    commission_spike_threshold_pct: float = 1.0
    delayed_after_days: int = 1
    critical_delay_after_days: int = 5
    large_chargeback_loss_amount: int = 5000
    refund_rate_threshold: float = 0.15
    margin_trend_stable_band_pct: float = 1.0
    landing_high_margin_pct: float = 35.0
    landing_moderate_margin_pct: float = 15.0
    currency_symbol: str = "₹"

    # Health score weights
    weight_matched: float = 0.40
    weight_mismatch: float = 0.25
    weight_delayed: float = 0.20
    weight_chargeback_loss: float = 0.15

    model_config = SettingsConfigDict(
        env_prefix="RECON_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    def engine_config(self) -> EngineConfig:
        return build_engine_config(
            margin_drop_threshold_pct=self.margin_drop_threshold_pct,
            commission_spike_threshold_pct=self.commission_spike_threshold_pct,
            delayed_after_days=self.delayed_after_days,
            critical_delay_after_days=self.critical_delay_after_days,
            health_weights={
                "matched": self.weight_matched,
                "mismatch": self.weight_mismatch,
                "delayed": self.weight_delayed,
                "chargeback_loss": self.weight_chargeback_loss,
            },
            large_chargeback_loss_amount=self.large_chargeback_loss_amount,
            refund_rate_threshold=self.refund_rate_threshold,
            margin_trend_stable_band_pct=self.margin_trend_stable_band_pct,
            landing_high_margin_pct=self.landing_high_margin_pct,
            landing_moderate_margin_pct=self.landing_moderate_margin_pct,
            currency_symbol=self.currency_symbol,
        )


def load_settings(**kwargs) -> Settings:
    """Read Settings from the environment; malformed values raise ConfigurationError."""
    try:
        return Settings(**kwargs)
    except ValidationError as exc:
        raise _configuration_error("environment settings", exc) from exc


settings = load_settings()


@lru_cache
def get_engine_config() -> EngineConfig:
    """Process-wide engine configuration, validated once on first use."""
    return settings.engine_config()
