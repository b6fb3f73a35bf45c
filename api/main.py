"""
api/main.py -- FastAPI application entry point for Character Vault.

Run with:      python main.py serve
               uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. log_requests       -- one INFO line per request
  2. SlowAPIMiddleware  -- default limits; route limits run in their decorators
  3. CORSMiddleware     -- adds CORS headers for allowed browser origins

Lifespan builds the per-process collaborators -- UserStore,
RevocationRegistry, CharacterStore, TokenService -- and hangs them on
app.state. Route handlers and auth dependencies read them from there; no
module holds its own copy. All state is in memory and lost on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.docs import get_redoc_html, get_swagger_ui_html
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import Credentials, ErrorDetail, ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.characters import router as characters_router
from auth.dependencies import get_current_claims
from auth.models import AccessClaims, Role
from auth.revocation import RevocationRegistry
from auth.store import UserExistsError, UserStore
from auth.tokens import TokenService, hash_password
from characters.store import CharacterStore
from core.config import Settings, get_settings

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("charvault.api")


# ---------------------------------------------------------------------------
# Startup helpers
# ---------------------------------------------------------------------------


def public_errors(errors) -> list[dict]:
    """Validation errors without the rejected input values, which may be passwords."""
    return [{key: value for key, value in err.items() if key != "input"} for err in errors]


def bootstrap_admin(user_store: UserStore, settings: Settings) -> bool:
    """Create the first admin account from BOOTSTRAP_ADMIN_EMAIL / _PASSWORD.

    Registration only ever creates "user" accounts, so without this the
    admin-only routes would be unreachable. Does nothing unless both
    settings are non-empty. Returns True if an account was created.
    """
    if not settings.bootstrap_admin_email or not settings.bootstrap_admin_password:
        return False
    try:
        creds = Credentials(
            email=settings.bootstrap_admin_email,
            password=settings.bootstrap_admin_password,
        )
    except ValidationError as exc:
        logger.warning("Bootstrap admin settings rejected, no admin created: %s", public_errors(exc.errors()))
        return False

    try:
        user = user_store.create_user(creds.email, hash_password(creds.password), role=Role.admin)
    except UserExistsError:
        logger.warning("Bootstrap admin %s already exists; skipping", creds.email)
        return False
    logger.info("Bootstrap admin created (id=%d)", user.id)
    return True


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the process-wide stores and token service; drop them on shutdown.

    Everything before yield runs on startup; everything after yield runs
    on shutdown.
    """
    settings = get_settings()
    logger.info("Character Vault API starting up")
    app.state.user_store = UserStore()
    app.state.revocations = RevocationRegistry()
    app.state.characters = CharacterStore()
    app.state.tokens = TokenService.from_settings(settings)
    bootstrap_admin(app.state.user_store, settings)
    logger.info(
        "Auth initialized (access_ttl=%ds, refresh_ttl=%ds)",
        settings.access_token_expire_seconds,
        settings.refresh_token_expire_seconds,
    )

    yield

    logger.info(
        "Character Vault API shutdown complete (%d users, %d revoked tokens discarded)",
        len(app.state.user_store),
        len(app.state.revocations),
    )


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Character Vault API",
    description="JWT-authenticated, role-gated CRUD over an in-memory character store.",
    version=__version__,
    lifespan=lifespan,
    # Built-in /docs and /redoc are replaced below by auth-protected routes.
    docs_url=None,
    redoc_url=None,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPIMiddleware looks for app.state.limiter by convention.
app.state.limiter = limiter


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, tags=["Auth"])
app.include_router(characters_router, tags=["Characters"])


# ---------------------------------------------------------------------------
# Auth-protected API documentation
# ---------------------------------------------------------------------------


@app.get("/docs", include_in_schema=False)
async def docs(claims: AccessClaims = Depends(get_current_claims)):
    """Swagger UI -- requires authentication."""
    return get_swagger_ui_html(openapi_url="/openapi.json", title="Character Vault API")


@app.get("/redoc", include_in_schema=False)
async def redoc(claims: AccessClaims = Depends(get_current_claims)):
    """ReDoc UI -- requires authentication."""
    return get_redoc_html(openapi_url="/openapi.json", title="Character Vault API")


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error and a Retry-After header."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="rate_limited",
                message="Too many requests.",
                detail=str(exc.detail),
            )
        ).model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 when the request body, path or query fails validation.

    Malformed JSON lands here too (FastAPI reports it as a json_invalid
    validation error).
    """
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(public_errors(exc.errors())),
            )
        ).model_dump(),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for every HTTP exception.

    Registered against Starlette's base class so router-level 404s for
    unmatched paths get the same envelope as errors raised by route code.
    A 405 (known path, unknown method) is answered as a plain 404.
    Route handlers raise HTTPException with a {code, message} dict as
    detail; that dict becomes the error field directly.
    """
    if exc.status_code == 405:
        return JSONResponse(
            status_code=404,
            content=ErrorResponse(error=ErrorDetail(code="not_found", message="Not Found")).model_dump(),
        )
    headers = getattr(exc, "headers", None)
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=headers)
    code = "not_found" if exc.status_code == 404 else f"http_{exc.status_code}"
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=str(exc.detail))).model_dump(),
        headers=headers,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The traceback goes to the log only. The client receives a generic
    message with no internal detail.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable.
# No auth, no rate limit.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
async def health(request: Request) -> HealthResponse:
    """Return liveness, version and in-memory store sizes."""
    state = request.app.state
    return HealthResponse(
        status="ok",
        version=__version__,
        components={
            "users": len(state.user_store),
            "characters": len(state.characters),
            "revoked_tokens": len(state.revocations),
        },
    )
