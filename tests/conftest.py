import httpx
import pytest
from httpx import ASGITransport

from contact_indexer.db import Database
from contact_indexer.services.contact_store import ContactStore

MEMORY_DB_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def mock_env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", MEMORY_DB_URL)
    monkeypatch.setenv("INGESTION_INTERVAL_HOURS", "0")
    monkeypatch.setenv("SETTLE_DELAY_MS", "0")


@pytest.fixture
async def database():
    db = Database(MEMORY_DB_URL, retry_delay_s=0.01)
    await db.connect()
    yield db
    await db.close()


@pytest.fixture
def contact_store(database):
    return ContactStore(database)


@pytest.fixture
async def client(mock_env):
    from contact_indexer.main import app, lifespan

    async with lifespan(app):
        async with httpx.AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as c:
            yield c
