"""Reconciliation router — stateless adapter over the engine.

Endpoints:
    POST /run                      Full reconciliation run over raw batches
    POST /normalize/{schema}       Validate one raw batch against a schema
    POST /health-score             Health score from explicit inputs
    POST /landing-costs            Landing cost and margin band per SKU
    POST /chargebacks/transition   Move a chargeback to its next status
    GET  /config                   Effective engine configuration

Nothing is persisted; every response is computed from the request body and
the process configuration.
"""

import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, Body, Depends

from settlement_engine.config import EngineConfig, get_engine_config
from settlement_engine.schemas.chargeback import Chargeback, ChargebackTransition
from settlement_engine.schemas.common import LandingMarginBand
from settlement_engine.schemas.health import HealthScoreInputs, HealthScoreResult
from settlement_engine.schemas.landing_cost import LandingCostRecord, LandingCostSummary
from settlement_engine.schemas.reconciliation import NormalizeOut, ReconciliationRun, RunRequest
from settlement_engine.services.chargeback import transition_chargeback
from settlement_engine.services.health_score import compute_health_score
from settlement_engine.services.landing_cost import analyze_landing_costs
from settlement_engine.services.normalizer import normalize_records
from settlement_engine.services.reconciliation import reconcile_raw, reject_out

logger = logging.getLogger("settlement_engine.api")

router = APIRouter()


# ── Full run ─────────────────────────────────────────────────

@router.post("/run", response_model=ReconciliationRun)
async def run_reconciliation(
    body: RunRequest,
    config: EngineConfig = Depends(get_engine_config),
):
    """Normalize every raw collection and run all modules.  Malformed
    records are excluded and listed under `rejected`; `asOf` defaults to
    today."""
    as_of = body.as_of or date.today()
    return reconcile_raw(body, config, as_of)


# ── Normalizer ───────────────────────────────────────────────

@router.post("/normalize/{schema}", response_model=NormalizeOut)
async def normalize(schema: str, records: list[Any] = Body(...)):
    result = normalize_records(records, schema)
    return NormalizeOut(
        schema_name=schema,
        total_records=result.total_records,
        valid_count=len(result.valid),
        rejected_count=len(result.rejected),
        valid=[r.model_dump(mode="json", by_alias=True) for r in result.valid],
        rejected=[reject_out(schema, r) for r in result.rejected],
    )


# ── Health score ─────────────────────────────────────────────

@router.post("/health-score", response_model=HealthScoreResult)
async def health_score(
    body: HealthScoreInputs,
    config: EngineConfig = Depends(get_engine_config),
):
    return compute_health_score(body, config.health_weights)


# ── Landing cost ─────────────────────────────────────────────

@router.post("/landing-costs", response_model=LandingCostSummary)
async def landing_costs(
    records: list[LandingCostRecord] = Body(...),
    portal: str | None = None,
    band: LandingMarginBand | None = None,
    config: EngineConfig = Depends(get_engine_config),
):
    """Landing cost and margin band per SKU; `portal` and `band` narrow the
    view the averages are taken over."""
    return analyze_landing_costs(records, config, portal=portal, band=band)


# ── Chargeback transition ────────────────────────────────────

@router.post("/chargebacks/transition", response_model=Chargeback)
async def chargeback_transition(body: ChargebackTransition):
    """Apply one lifecycle step.  Terminal or skipped transitions answer
    409 with INVALID_TRANSITION / TERMINAL_STATE."""
    updated = transition_chargeback(body.chargeback, body.status)
    logger.info(
        "Chargeback %s moved %s -> %s",
        updated.id, body.chargeback.status.value, updated.status.value,
    )
    return updated


# ── Configuration ────────────────────────────────────────────

@router.get("/config", response_model=EngineConfig)
async def effective_config(config: EngineConfig = Depends(get_engine_config)):
    return config
