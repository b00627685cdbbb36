import os
import tempfile
from pathlib import Path

import pytest

# Point the app at a scratch database and upload folder before it is imported.
_TMP = Path(tempfile.mkdtemp(prefix="linkup-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP / 'test.db'}"
os.environ["UPLOAD_DIR"] = str(_TMP / "uploads")

from sqlmodel import SQLModel  # noqa: E402

from linkup import models  # noqa: E402,F401
from linkup.database import engine  # noqa: E402
from linkup.utils.rate_limit import LoginThrottle  # noqa: E402


@pytest.fixture(autouse=True)
def reset_db(monkeypatch):
    """Start every test from empty tables and a fresh login throttle."""
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    monkeypatch.setattr("linkup.routers.auth._login_throttle", LoginThrottle(20, 300))
    yield


@pytest.fixture
def make_user():
    """Register a user through the API and return `(user, headers)`."""
    from fastapi.testclient import TestClient
    from linkup.main import app

    client = TestClient(app)

    def _make(name="Alice", email=None, password="secret1", bio=""):
        email = email or f"{name.lower().replace(' ', '.')}@example.com"
        r = client.post("/api/auth/register", json={"name": name, "email": email, "password": password, "bio": bio})
        assert r.status_code == 201, r.text
        body = r.json()
        return body["user"], {"Authorization": f"Bearer {body['token']}"}

    return _make
