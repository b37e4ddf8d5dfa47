"""
Pytest configuration and shared fixtures.
"""

import json

import pytest
from fastapi.testclient import TestClient

from api.config import config as api_config
from api.main import create_app
from identity.provider import InMemoryIdentityProvider
from store.kv import InMemoryKVStore


@pytest.fixture
def prefix():
    """Route prefix every endpoint is mounted under."""
    return api_config.route_prefix.rstrip("/")


@pytest.fixture
def kv_store():
    """Create an empty in-memory key-value store."""
    return InMemoryKVStore()


@pytest.fixture
def identity():
    """Create an in-memory identity provider."""
    return InMemoryIdentityProvider()


@pytest.fixture
def client(kv_store, identity):
    """Create test client wired to the in-memory backends."""
    app = create_app(kv_store=kv_store, identity_provider=identity)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register(client, identity, prefix):
    """
    Sign a user up through the API and return (user_id, auth headers).
    """
    def _register(name: str, email: str = None, password: str = "correct-horse"):
        email = email or f"{name.lower()}@example.com"
        response = client.post(
            f"{prefix}/signup",
            json={"email": email, "password": password, "name": name}
        )
        assert response.status_code == 200, response.text
        user_id = response.json()["user"]["id"]
        token = identity.sign_in(email, password)
        return user_id, {"Authorization": f"Bearer {token}"}

    return _register


@pytest.fixture
def sample_collection():
    """Collection record as stored by the service."""
    return {
        "id": "1700000000000-abcdefghi",
        "name": "Sci-Fi",
        "description": "Space and beyond",
        "userId": "user-a",
        "createdAt": "2026-01-01T00:00:00.000Z"
    }


@pytest.fixture
def sample_book(sample_collection):
    """Book record as stored by the service."""
    return {
        "id": "1700000000001-jklmnopqr",
        "title": "Dune",
        "author": "Frank Herbert",
        "description": "Desert planet",
        "coverImage": "https://example.com/dune.jpg",
        "collectionId": sample_collection["id"],
        "userId": sample_collection["userId"],
        "createdAt": "2026-01-01T00:00:01.000Z"
    }


@pytest.fixture
def seed(kv_store):
    """Write a record straight into the in-memory store."""
    def _seed(key: str, value):
        kv_store.entries[key] = json.dumps(value)

    return _seed
