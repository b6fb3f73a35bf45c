"""
api/routes/auth.py -- Registration, login and logout endpoints.

Routes:
  POST /auth/register  -- create a "user"-role account; 201
  POST /auth/login     -- password login; returns access + refresh tokens
  POST /auth/logout    -- revoke the presented bearer token; 200

Security:
  POST /login is rate-limited per client IP (LOGIN_RATE_LIMIT).
  authenticate_user() provides timing equalization -- use it, never inline
  get_by_email() + verify_password().
  Unknown email and wrong password produce the same 401 body.
  Cache-Control: no-store on login responses.

There is deliberately no refresh-token exchange endpoint. Refresh tokens are
issued and tracked on the user record but cannot yet be traded for a new
access token.
"""

import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import Credentials, MessageResponse, TokenPairResponse, UserResponse
from auth.guards import extract_bearer_token
from auth.revocation import RevocationRegistry
from auth.store import UserExistsError, UserStore
from auth.tokens import InvalidToken, TokenService, authenticate_user, hash_password
from core.config import get_settings

logger = logging.getLogger("charvault.api")

# Auth policy:
# - POST /auth/register: public
# - POST /auth/login:    public, rate limited
# - POST /auth/logout:   bearer token required, but validity is not
router = APIRouter(prefix="/auth")


@router.post("/register", response_model=UserResponse, status_code=201)
def register(request: Request, body: Credentials) -> UserResponse:
    """Create a new account with the "user" role.

    Registering an email that already exists is rejected with 409 rather
    than overwriting the existing account.
    """
    user_store: UserStore = request.app.state.user_store
    try:
        user = user_store.create_user(body.email, hash_password(body.password))
    except UserExistsError as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "conflict", "message": "A user with that email already exists."},
        ) from exc
    logger.info("Registered user id=%d", user.id)
    return UserResponse.from_user(user)


@router.post("/login", response_model=TokenPairResponse)
@limiter.limit(lambda: get_settings().login_rate_limit)
def login(request: Request, body: Credentials) -> JSONResponse:
    """Authenticate with email and password; issue an access/refresh token pair.

    The new refresh token replaces whatever refresh token the user held
    before, so only the most recent login's refresh token is on record.
    """
    user_store: UserStore = request.app.state.user_store
    tokens: TokenService = request.app.state.tokens

    user = authenticate_user(user_store, body.email, body.password)
    if user is None:
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": "bad_credentials", "message": "Invalid email or password."}},
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    access_token = tokens.issue_access_token(user)
    refresh_token = tokens.issue_refresh_token(user)
    user_store.set_refresh_token(user.email, refresh_token)

    resp = JSONResponse(
        status_code=200,
        content=TokenPairResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=tokens.access_ttl_seconds,
        ).model_dump(by_alias=True),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/logout", response_model=MessageResponse)
def logout(request: Request) -> MessageResponse:
    """Revoke the bearer token and forget the caller's refresh token.

    Best-effort: the token is revoked even if it no longer verifies, and the
    response is 200 whether or not a user record was found. The user is
    identified from the verified token claims, never from the raw string.
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
            headers={"WWW-Authenticate": "Bearer"},
        )

    registry: RevocationRegistry = request.app.state.revocations
    tokens: TokenService = request.app.state.tokens
    user_store: UserStore = request.app.state.user_store

    registry.revoke(token)
    try:
        claims = tokens.verify_access_token(token)
    except InvalidToken:
        logger.info("Logout with unverifiable token; revoked without clearing a refresh token")
    else:
        if not user_store.clear_refresh_token(claims.email):
            logger.info("Logout for unknown user id=%d", claims.id)

    return MessageResponse(message="Logged out.")
