"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work; these classes own the domain shape.

AccessClaims / RefreshClaims are only ever built by TokenService after a
token has passed signature, expiry and claim-shape checks. Route code never
assembles them from a raw payload dict.

Layer rule: no imports from api/ or characters/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

PASSWORD_MIN_LENGTH = 6


class Role(str, Enum):
    admin = "admin"
    user = "user"


@dataclass
class User:
    """A registered identity. email is the unique key in UserStore.

    password_digest is the bcrypt hash and is never serialized to clients.
    refresh_token holds the most recently issued refresh token; a new login
    overwrites it and logout clears it.
    """

    id: int
    email: str
    password_digest: str
    role: Role = Role.user
    refresh_token: str | None = None


@dataclass(frozen=True)
class AccessClaims:
    """Verified payload of an access token."""

    id: int
    role: Role
    email: str
    expires_at: datetime


@dataclass(frozen=True)
class RefreshClaims:
    """Verified payload of a refresh token. Identity only, no role."""

    id: int
    expires_at: datetime
