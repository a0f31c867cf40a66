"""Pytest configuration for backend tests.

Each test gets its own SQLite database and a freshly built app, so the
lifespan-owned broadcaster and session store never leak between tests.
"""

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add project root to path so `web.backend` imports resolve
project_root = Path(__file__).parent.parent.parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from grouptherapy.core.config import AuthConfig, Config, RadioConfig  # noqa: E402
from grouptherapy.core.database import init_database  # noqa: E402
from grouptherapy.domain.auth import create_admin_user  # noqa: E402
from web.backend.main import create_app  # noqa: E402

LIVE_URL = "https://stream.example.com/live"


@pytest.fixture
def anyio_backend():
    """The code under test is asyncio-based; run anyio tests on asyncio only."""
    return "asyncio"


@pytest.fixture
def radio_db(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
    monkeypatch.delenv("DATABASE_URL", raising=False)
    init_database()
    return tmp_path


@pytest.fixture
def config() -> Config:
    return Config(
        radio=RadioConfig(default_stream_url=LIVE_URL),
        auth=AuthConfig(bcrypt_rounds=4, max_login_attempts=3),
    )


@pytest.fixture
def client(radio_db, config):
    with TestClient(create_app(config)) as test_client:
        yield test_client


@pytest.fixture
def admin(radio_db):
    return create_admin_user("dj", "s3cret", rounds=4)


@pytest.fixture
def auth_headers(client, admin) -> dict[str, str]:
    response = client.post("/api/auth/login", json={"username": "dj", "password": "s3cret"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['sessionId']}"}
