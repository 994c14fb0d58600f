# Fixtures partagées : store SQLite temporaire, broadcaster factice, app de test
from typing import Any, Dict

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from monojar.core.settings import Settings
from monojar.main import create_app
from monojar.services.donation_store import DonationStore
from tests.helpers import FakeBroadcaster, sqlite_url


@pytest_asyncio.fixture
async def store(tmp_path):
    """DonationStore sur une base SQLite temporaire."""
    s = DonationStore.from_url(sqlite_url(tmp_path / "donations.db"))
    await s.init()
    try:
        yield s
    finally:
        await s.close()


@pytest.fixture
def broadcaster():
    return FakeBroadcaster()


@pytest.fixture
def settings_factory(tmp_path):
    def _make(**overrides: Any) -> Settings:
        values: Dict[str, Any] = {
            "DATABASE_URL": sqlite_url(tmp_path / "app.db"),
            "MONO_TOKEN": "",
            "RATE_LIMIT_ENABLED": False,
            "LOG_LEVEL": "WARNING",
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def client(settings_factory):
    """TestClient sans intégration Monobank (poller arrêté)."""
    app = create_app(settings_factory())
    with TestClient(app) as c:
        yield c
