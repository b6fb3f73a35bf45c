"""
tests/conftest.py -- Shared test fixtures for Character Vault tests.

This module provides:
  - stores: fresh UserStore / RevocationRegistry / CharacterStore / TokenService
  - _patch_lifespan(): wires those stores into app.state, bypassing real startup
  - client: TestClient over the real app using the patched lifespan
  - make_user / bearer: helpers to create accounts and Authorization headers

Every test gets its own stores, so "no characters yet -> 404" style tests do
not depend on test order.

DEBUG must be set before any auth/core import so get_settings() generates a
SECRET_KEY instead of raising. LOGIN_RATE_LIMIT is raised because the limiter
counts every login in the session against the same client address.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: set before importing anything that reads settings.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "10000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import Role, User
from auth.revocation import RevocationRegistry
from auth.store import UserStore
from auth.tokens import TokenService, hash_password
from characters.store import CharacterStore

TEST_SECRET = "test-secret-key-that-is-at-least-32-characters-long"


@dataclass
class Stores:
    users: UserStore
    revocations: RevocationRegistry
    characters: CharacterStore
    tokens: TokenService


def _patch_lifespan(stores: Stores):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = stores.users
        app.state.revocations = stores.revocations
        app.state.characters = stores.characters
        app.state.tokens = stores.tokens
        yield

    return test_lifespan


@pytest.fixture
def stores() -> Stores:
    return Stores(
        users=UserStore(),
        revocations=RevocationRegistry(),
        characters=CharacterStore(),
        tokens=TokenService(TEST_SECRET),
    )


@pytest.fixture
def client(stores: Stores) -> Generator[TestClient, None, None]:
    """TestClient over the real app with isolated in-memory stores."""
    app.router.lifespan_context = _patch_lifespan(stores)
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


@pytest.fixture
def make_user(stores: Stores) -> Callable[..., User]:
    """Create a user directly in the store (bypassing /auth/register)."""

    def _make(email: str = "user@example.com", password: str = "secret1", role: Role = Role.user) -> User:
        return stores.users.create_user(email, hash_password(password), role=role)

    return _make


@pytest.fixture
def bearer(stores: Stores, make_user) -> Callable[[Role], dict[str, str]]:
    """Return Authorization headers for a freshly created user of the given role."""
    counter = {"n": 0}

    def _bearer(role: Role = Role.user) -> dict[str, str]:
        counter["n"] += 1
        user = make_user(email=f"{role.value}{counter['n']}@example.com", role=role)
        return {"Authorization": f"Bearer {stores.tokens.issue_access_token(user)}"}

    return _bearer


@pytest.fixture
def lenient_client(stores: Stores) -> Generator[TestClient, None, None]:
    """Like client, but unhandled exceptions come back as 500 responses instead of raising."""
    app.router.lifespan_context = _patch_lifespan(stores)
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
