"""
auth/tokens.py -- JWT issuance/verification and password hashing.

Security design decisions:
  JWT: python-jose with HS256. Two token kinds share one SECRET_KEY:
       access  -- id, role, email; 1 hour by default. Authorizes requests.
       refresh -- id only; 1 day by default. Carries no role, so it cannot
                  pass an authorization check even if it leaks.
       Every token carries a "typ" claim, and verification pins the expected
       kind, so a refresh token presented as a bearer credential is rejected.
       A random "jti" keeps two tokens minted in the same second distinct,
       which matters because revocation is keyed by the raw token string.

  Verification raises InvalidToken on any failure (bad signature, expired,
       wrong kind, missing or mistyped claim). Claims objects are built only
       after every check passes.

  Passwords: bcrypt directly (no passlib wrapper). The _DUMMY_HASH constant
       enables timing equalization in authenticate_user() so response time
       does not reveal whether an email is registered.

Layer rule: no imports from api/ or characters/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from auth.models import AccessClaims, RefreshClaims, Role, User

if TYPE_CHECKING:
    from auth.store import UserStore
    from core.config import Settings

logger = logging.getLogger("charvault.auth")

_ALGORITHM = "HS256"

_ACCESS = "access"
_REFRESH = "refresh"


class InvalidToken(Exception):
    """Raised when a token fails signature, expiry or claim-shape checks."""


# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes. The API layer caps password
    length well below that threshold.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed digest (e.g. not a bcrypt hash at all).
        return False


# Computed once at module load so the first failed login is not measurably
# faster than later ones.
_DUMMY_HASH: str = hash_password("charvault_timing_dummy")


def authenticate_user(store: UserStore, email: str, password: str) -> User | None:
    """Check an email/password pair with timing equalization.

    Always runs bcrypt whether or not the email exists:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash

    Returns the User on success, None on any failure.
    """
    user = store.get_by_email(email)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.password_digest):
        return None
    return user


# ---------------------------------------------------------------------------
# Token service
# ---------------------------------------------------------------------------


class TokenService:
    """Issues and verifies signed access and refresh tokens.

    Stateless apart from its configuration; safe to share across threads.

    Usage:
        tokens = TokenService.from_settings(get_settings())
        raw = tokens.issue_access_token(user)
        claims = tokens.verify_access_token(raw)   # raises InvalidToken
    """

    def __init__(
        self,
        secret_key: str,
        access_ttl_seconds: int = 3600,
        refresh_ttl_seconds: int = 86400,
    ) -> None:
        self._secret_key = secret_key
        self.access_ttl_seconds = access_ttl_seconds
        self.refresh_ttl_seconds = refresh_ttl_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenService:
        return cls(
            secret_key=settings.secret_key,
            access_ttl_seconds=settings.access_token_expire_seconds,
            refresh_ttl_seconds=settings.refresh_token_expire_seconds,
        )

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    def issue_access_token(self, user: User) -> str:
        """Sign {id, role, email} with the access lifetime."""
        payload = {
            "id": user.id,
            "role": Role(user.role).value,
            "email": user.email,
        }
        return self._encode(payload, _ACCESS, self.access_ttl_seconds)

    def issue_refresh_token(self, user: User) -> str:
        """Sign {id} with the refresh lifetime."""
        return self._encode({"id": user.id}, _REFRESH, self.refresh_ttl_seconds)

    def _encode(self, payload: dict, kind: str, ttl_seconds: int) -> str:
        expire = datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds)
        claims = {
            **payload,
            "typ": kind,
            "jti": secrets.token_hex(8),
            "exp": expire,
        }
        return jwt.encode(claims, self._secret_key, algorithm=_ALGORITHM)

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    def verify_access_token(self, token: str) -> AccessClaims:
        """Return the verified claims of an access token or raise InvalidToken."""
        payload = self._decode(token, _ACCESS)
        role = payload.get("role")
        email = payload.get("email")
        if role not in {r.value for r in Role}:
            raise InvalidToken("access token carries no valid role")
        if not isinstance(email, str) or not email:
            raise InvalidToken("access token carries no email")
        return AccessClaims(
            id=_int_claim(payload, "id"),
            role=Role(role),
            email=email,
            expires_at=_expiry(payload),
        )

    def verify_refresh_token(self, token: str) -> RefreshClaims:
        """Return the verified claims of a refresh token or raise InvalidToken."""
        payload = self._decode(token, _REFRESH)
        return RefreshClaims(id=_int_claim(payload, "id"), expires_at=_expiry(payload))

    def _decode(self, token: str, kind: str) -> dict:
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM])
        except JWTError as exc:
            # ExpiredSignatureError and JWTClaimsError are JWTError subclasses.
            raise InvalidToken(str(exc)) from exc
        if payload.get("typ") != kind:
            raise InvalidToken(f"expected a {kind} token")
        if "exp" not in payload:
            raise InvalidToken("token has no expiry")
        return payload


def _int_claim(payload: dict, name: str) -> int:
    value = payload.get(name)
    # bool is an int subclass; a JSON true must not pass as an id.
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidToken(f"claim {name!r} is missing or not an integer")
    return value


def _expiry(payload: dict) -> datetime:
    try:
        return datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
    except (TypeError, ValueError) as exc:
        raise InvalidToken("claim 'exp' is not a timestamp") from exc
