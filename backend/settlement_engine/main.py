import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from settlement_engine.config import get_engine_config, settings
from settlement_engine.middleware.exceptions import register_exception_handlers
from settlement_engine.routers import health, reconciliation

logger = logging.getLogger("settlement_engine")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Validate the engine configuration before serving any request."""
    logging.basicConfig(level=settings.log_level.upper())
    config = get_engine_config()
    logger.info(
        "Engine configuration loaded (margin drop >= %.2f%%, commission spike > %.2f%%)",
        config.margin_drop_threshold_pct,
        config.commission_spike_threshold_pct,
    )
    yield


app = FastAPI(
    title="Settlement Engine",
    description="Settlement reconciliation and margin-anomaly engine for marketplace sellers",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware ───────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(reconciliation.router, prefix="/api/reconciliation", tags=["reconciliation"])
