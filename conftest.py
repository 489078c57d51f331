import asyncio
import os
import tempfile

import pytest

# Settings are read at import time, so the test database must be configured first
_db_dir = tempfile.mkdtemp(prefix="wolfpack-test-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ["ENV"] = "test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SEED_DEMO_USER"] = "false"

from fastapi.testclient import TestClient  # noqa: E402

from config import settings  # noqa: E402


@pytest.fixture
def client():
    """App client over a freshly created and seeded database."""
    from main import app
    from database import drop_db

    with TestClient(app) as c:
        yield c
    asyncio.run(drop_db())


@pytest.fixture
def register(client):
    """Register a user and return (profile, auth headers)."""

    def _register(username: str = "wolf", password: str = "howl-at-moon"):
        response = client.post("/api/register", json={
            "username": username,
            "password": password,
            "email": f"{username}@wolf.com",
            "fullName": username.title(),
        })
        assert response.status_code == 201, response.text
        token = response.cookies[settings.SESSION_COOKIE_NAME]
        # Each test user authenticates by header so several can coexist
        client.cookies.clear()
        return response.json(), {"Authorization": f"Bearer {token}"}

    return _register
