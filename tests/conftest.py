"""
Shared fixtures: a fresh application (and registry) per test.
"""

import os

# Set before importing the app so the cached settings and limiter pick them up
os.environ.setdefault("SECURITY_MODE", "open")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("RATE_LIMIT_DEFAULT", "10000/minute")
os.environ.setdefault("RATE_LIMIT_UPLOAD", "10000/minute")
os.environ.setdefault("DATA_DIR", "")

import pytest
from httpx import ASGITransport, AsyncClient

from vaultstamp.core.config import Settings
from vaultstamp.core.rate_limit import limiter
from vaultstamp.main import create_app
from vaultstamp.services.file_registry import FileRegistryService


ALICE = "vs-alice0000000001"
BOB = "vs-bob000000000002"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        security_mode="open",
        log_level="WARNING",
        data_dir="",
    )


@pytest.fixture
def registry():
    """A fresh in-memory registry service."""
    return FileRegistryService()


@pytest.fixture
def app(settings):
    limiter.reset()
    return create_app(settings)


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def alice_headers():
    return {"X-Caller-Identity": ALICE}


@pytest.fixture
def bob_headers():
    return {"X-Caller-Identity": BOB}
