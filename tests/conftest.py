"""
DocProof - Shared test fixtures.

Every test gets its own SQLite file under tmp_path, fresh settings and fresh
service singletons, so state never leaks between event loops.
"""

import pytest
from httpx import AsyncClient, ASGITransport

from app.core import database
from app.core.config import get_settings
from app.services import fingerprint_store, ledger_simulator
from app.services.fingerprint_store import (
    InMemoryFingerprintStore,
    SQLAlchemyFingerprintStore,
)
from app.services.ledger_simulator import ConfirmationScheduler


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def settings(tmp_path, monkeypatch):
    """Settings pointing at a throwaway database with a short confirmation delay."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'docproof_test.db'}")
    monkeypatch.setenv("CONFIRMATION_DELAY_SECONDS", "0.5")
    monkeypatch.setenv("RECOVER_PENDING_ON_STARTUP", "false")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    get_settings.cache_clear()
    monkeypatch.setattr(fingerprint_store, "_store_instance", None)
    monkeypatch.setattr(ledger_simulator, "_scheduler_instance", None)
    monkeypatch.setattr(database, "_engine", None)
    monkeypatch.setattr(database, "_async_session_factory", None)

    yield get_settings()

    get_settings.cache_clear()


@pytest.fixture
async def db(settings):
    """Create tables; stop scheduled confirmations and dispose the engine afterwards."""
    await database.init_db()
    yield
    if ledger_simulator._scheduler_instance is not None:
        await ledger_simulator._scheduler_instance.shutdown()
    await database.close_db()


@pytest.fixture
def memory_store():
    return InMemoryFingerprintStore()


@pytest.fixture
def sql_store(db):
    return SQLAlchemyFingerprintStore()


@pytest.fixture(params=["memory", "sql"])
def store(request, db):
    """Run the test against both store implementations."""
    if request.param == "memory":
        return InMemoryFingerprintStore()
    return SQLAlchemyFingerprintStore()


@pytest.fixture
async def scheduler(store):
    scheduler = ConfirmationScheduler(store, default_delay=0.05)
    yield scheduler
    await scheduler.shutdown()


@pytest.fixture
async def client(db, settings):
    """HTTP client over the ASGI app (lifespan is not run; db fixture creates tables)."""
    from app.main import create_app

    app = create_app(settings)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
