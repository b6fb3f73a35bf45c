"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

This is the boundary between the pure decisions in auth/guards.py and HTTP.
A Deny becomes an HTTPException carrying the reason's status code and a
{code, message} detail; the exception handler in api/main.py renders it in
the standard error envelope.

get_current_claims() authenticates the request and returns verified
AccessClaims. require_roles(*roles) builds a dependency that authenticates
and then checks the role allow-list.

The stores are read from app.state, where the lifespan in api/main.py puts
them. Nothing here holds module-level state.

Layer rule: no imports from api/ or characters/.
  auth/dependencies.py may import from fastapi (for Depends/HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from fastapi import Depends, HTTPException, Request

from auth.guards import Deny, DenyReason, authenticate, authorize
from auth.models import AccessClaims, Role

logger = logging.getLogger("charvault.auth")


def _reject(request: Request, reason: DenyReason) -> HTTPException:
    logger.info("Denied %s %s: %s", request.method, request.url.path, reason.name)
    headers = {"WWW-Authenticate": "Bearer"} if reason.status_code == 401 else None
    return HTTPException(
        status_code=reason.status_code,
        detail={"code": reason.code, "message": reason.message},
        headers=headers,
    )


def get_current_claims(request: Request) -> AccessClaims:
    """Require a valid, unrevoked access token.

    Raises HTTP 401 when no bearer token is sent and HTTP 403 when the token
    is revoked or fails verification. On success the claims are also stored
    on request.state.claims for middleware and logging.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(claims: AccessClaims = Depends(get_current_claims)): ...
    """
    decision = authenticate(
        request.headers.get("Authorization"),
        request.app.state.revocations,
        request.app.state.tokens,
    )
    if isinstance(decision, Deny):
        raise _reject(request, decision.reason)
    request.state.claims = decision.claims
    return decision.claims


def require_roles(*roles: Role) -> Callable[..., AccessClaims]:
    """Build a dependency that admits only the given roles.

    Raises HTTP 401/403 exactly like get_current_claims(), then HTTP 403 if
    the authenticated role is not in roles.

        @router.delete("/things/{id}")
        async def route(claims: AccessClaims = Depends(require_roles(Role.admin))): ...
    """
    allowed = frozenset(roles)

    def dependency(request: Request, claims: AccessClaims = Depends(get_current_claims)) -> AccessClaims:
        decision = authorize(claims, allowed)
        if isinstance(decision, Deny):
            raise _reject(request, decision.reason)
        return decision.claims

    return dependency
