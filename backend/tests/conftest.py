"""Pytest configuration and fixtures for settlement engine tests.

Provides the default engine configuration, a fixed run date and an HTTP
client bound to the FastAPI app.  Record factories live in factories.py.
"""

from datetime import date
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from settlement_engine.config import EngineConfig, get_engine_config
from settlement_engine.main import app

from factories import AS_OF


# ── Engine Fixtures ──────────────────────────────────────────────

@pytest.fixture
def config() -> EngineConfig:
    """Default engine configuration (not read from the environment)."""
    return EngineConfig()


@pytest.fixture
def as_of() -> date:
    return AS_OF


# ── HTTP Client ──────────────────────────────────────────────────

@pytest_asyncio.fixture
async def client(config: EngineConfig) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, with the default engine configuration."""
    app.dependency_overrides[get_engine_config] = lambda: config

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "engine: Pure engine tests (no HTTP)")
    config.addinivalue_line("markers", "api: HTTP endpoint tests")
