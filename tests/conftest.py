import os
import tempfile

# Settings are read at import time, so the environment is prepared first
_TMP_DIR = tempfile.mkdtemp(prefix="healthdash-tests-")
os.environ["DATABASE_URL"] = ""
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["SEED_DATA"] = "true"
os.environ["ENVIRONMENT"] = "test"

import pytest
from fastapi.testclient import TestClient

from healthdash.database import connection
from healthdash.main import app
from healthdash.utils import rate_limit


@pytest.fixture
def client(tmp_path):
    """App client backed by a fresh SQLite database (schema + seed via lifespan)"""
    assert connection.init_database(f"sqlite:///{tmp_path / 'healthdash.db'}")
    rate_limit.reset()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def signup(client):
    """Create an account; returns (auth headers, user json)"""
    counter = {"n": 0}

    def _signup(name="Test User", email=None, password="secret123", **extra):
        counter["n"] += 1
        email = email or f"user{counter['n']}@healthmail.com"
        response = client.post(
            "/api/auth/signup",
            json=dict({"name": name, "email": email, "password": password}, **extra),
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return {"Authorization": f"Bearer {body['token']}"}, body["user"]

    return _signup


@pytest.fixture
def auth_headers(signup):
    headers, _ = signup()
    return headers
