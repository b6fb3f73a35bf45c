"""
auth/guards.py -- Pure authentication and authorization decisions.

Both checks return a tagged result instead of writing a response:

    Allow(claims)   -- the request may continue
    Deny(reason)    -- the request must be rejected; reason.status_code says how

Turning a Deny into an HTTP response is the job of auth/dependencies.py.
Keeping the decision free of I/O means it can be tested with nothing but a
header string and two objects.

Status contract:
  missing credential                 -> 401
  revoked / invalid / expired token  -> 403
  no identity or role not allowed    -> 403
The 401/403 split is intentional: 401 means "send a credential", 403 means
"the credential you sent is not good enough".

Layer rule: no imports from api/, characters/ or fastapi.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Union

from auth.models import AccessClaims, Role
from auth.revocation import RevocationRegistry
from auth.tokens import InvalidToken, TokenService


class DenyReason(Enum):
    """Why a request was rejected. Value is (status_code, code, message)."""

    MISSING_CREDENTIAL = (401, "unauthorized", "Authentication required.")
    REVOKED_TOKEN = (403, "forbidden", "Token has been revoked.")
    INVALID_TOKEN = (403, "forbidden", "Token is invalid or expired.")
    MISSING_IDENTITY = (403, "forbidden", "No authenticated identity on request.")
    INSUFFICIENT_ROLE = (403, "forbidden", "Insufficient role for this operation.")

    @property
    def status_code(self) -> int:
        return self.value[0]

    @property
    def code(self) -> str:
        return self.value[1]

    @property
    def message(self) -> str:
        return self.value[2]


@dataclass(frozen=True)
class Allow:
    claims: AccessClaims


@dataclass(frozen=True)
class Deny:
    reason: DenyReason


Decision = Union[Allow, Deny]


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an "Authorization: Bearer <token>" header value.

    The scheme is matched case-insensitively. Anything else (no header, a
    different scheme, an empty token) returns None.
    """
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None


def authenticate(
    authorization: str | None,
    registry: RevocationRegistry,
    tokens: TokenService,
) -> Decision:
    """Decide whether a request carries a usable access token.

    Checks run in order and stop at the first failure:
      1. no bearer token        -> Deny(MISSING_CREDENTIAL)
      2. token revoked          -> Deny(REVOKED_TOKEN)
      3. verification fails    -> Deny(INVALID_TOKEN)
    The revocation check comes first so a revoked token is rejected even
    while its signature is still valid.
    """
    token = extract_bearer_token(authorization)
    if token is None:
        return Deny(DenyReason.MISSING_CREDENTIAL)
    if registry.is_revoked(token):
        return Deny(DenyReason.REVOKED_TOKEN)
    try:
        claims = tokens.verify_access_token(token)
    except InvalidToken:
        return Deny(DenyReason.INVALID_TOKEN)
    return Allow(claims)


def authorize(claims: AccessClaims | None, allowed_roles: Iterable[Role]) -> Decision:
    """Decide whether an authenticated identity holds one of allowed_roles."""
    if claims is None:
        return Deny(DenyReason.MISSING_IDENTITY)
    if claims.role not in set(allowed_roles):
        return Deny(DenyReason.INSUFFICIENT_ROLE)
    return Allow(claims)
