"""Synthesized risk alerts."""

from datetime import datetime

from settlement_engine.schemas.common import AlertType, EngineRecord, Severity


class RiskAlert(EngineRecord):
    """A single finding, categorised by type and severity.

    Produced by the synthesizer and never mutated; `entity_refs` holds the
    identifiers of the records involved so the presentation layer can link
    to them ({"batch_id": "...", "sku_id": "...", ...}).
    """
    id: str
    type: AlertType
    severity: Severity
    portal: str
    title: str
    description: str
    impact: str
    impact_amount: int | None = None
    timestamp: datetime
    entity_refs: dict[str, str] = {}


class AlertSynthesis(EngineRecord):
    alerts: tuple[RiskAlert, ...]
    by_severity: dict[Severity, int]
    by_type: dict[AlertType, int]

    @property
    def total(self) -> int:
        return len(self.alerts)
