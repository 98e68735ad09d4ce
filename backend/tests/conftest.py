"""
Pytest configuration and shared test helpers for backend tests.
"""
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

BACKEND_DIR = Path(__file__).resolve().parent.parent
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

# Shared TestClient fixture so tests can use in-process requests without a running server.
# TestClient is not used as a context manager, so the lifespan (MongoDB connect) does not run.
from fastapi.testclient import TestClient
from server import app


def make_collection():
    """A motor collection stand-in: every call is awaitable, writes succeed."""
    coll = MagicMock()
    coll.find_one = AsyncMock(return_value=None)
    coll.insert_one = AsyncMock()
    coll.update_one = AsyncMock(return_value=MagicMock(matched_count=1))
    coll.find_one_and_update = AsyncMock(return_value=None)
    return coll


@pytest.fixture
def mock_db():
    """db[name] returns the same mock collection for the same name."""
    collections = {}
    db = MagicMock()
    db.__getitem__.side_effect = lambda name: collections.setdefault(name, make_collection())
    return db


@pytest.fixture
def client():
    """Return a TestClient for the main FastAPI app (server:app). Use for unit-style API tests."""
    return TestClient(app)


@pytest.fixture
def auth_headers():
    from auth import create_access_token
    token = create_access_token({"user_id": "user-1", "email": "ops@example.com"})
    return {"Authorization": f"Bearer {token}"}
