"""Unit tests for auth/guards.py -- the pure Allow/Deny decisions.

No HTTP involved: these call authenticate() and authorize() directly with a
header string, a registry and a token service.
"""

from datetime import datetime, timedelta, timezone

import pytest

from auth.guards import Allow, Deny, DenyReason, authenticate, authorize, extract_bearer_token
from auth.models import AccessClaims, Role, User
from auth.revocation import RevocationRegistry
from auth.tokens import TokenService

SECRET = "guard-test-secret-key-with-enough-entropy-012345"


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(SECRET)


@pytest.fixture
def registry() -> RevocationRegistry:
    return RevocationRegistry()


def _user(role: Role = Role.user) -> User:
    return User(id=7, email="a@x.com", password_digest="unused", role=role)


def _claims(role: Role) -> AccessClaims:
    return AccessClaims(
        id=7,
        role=role,
        email="a@x.com",
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
    )


class TestExtractBearerToken:
    @pytest.mark.parametrize(
        "header, expected",
        [
            ("Bearer abc.def.ghi", "abc.def.ghi"),
            ("bearer abc", "abc"),
            ("  Bearer   abc  ", "abc"),
            (None, None),
            ("", None),
            ("Bearer", None),
            ("Bearer   ", None),
            ("Basic dXNlcjpwYXNz", None),
            ("abc.def.ghi", None),
        ],
    )
    def test_extraction(self, header, expected) -> None:
        assert extract_bearer_token(header) == expected


class TestAuthenticate:
    def test_missing_header_is_401(self, registry, tokens) -> None:
        decision = authenticate(None, registry, tokens)
        assert decision == Deny(DenyReason.MISSING_CREDENTIAL)
        assert decision.reason.status_code == 401

    def test_non_bearer_scheme_is_401(self, registry, tokens) -> None:
        decision = authenticate("Basic dXNlcjpwYXNz", registry, tokens)
        assert decision == Deny(DenyReason.MISSING_CREDENTIAL)

    def test_valid_token_allows_with_claims(self, registry, tokens) -> None:
        token = tokens.issue_access_token(_user(Role.admin))
        decision = authenticate(f"Bearer {token}", registry, tokens)
        assert isinstance(decision, Allow)
        assert decision.claims.id == 7
        assert decision.claims.role is Role.admin
        assert decision.claims.email == "a@x.com"

    def test_revoked_token_is_403_even_when_signature_valid(self, registry, tokens) -> None:
        token = tokens.issue_access_token(_user())
        registry.revoke(token)
        decision = authenticate(f"Bearer {token}", registry, tokens)
        assert decision == Deny(DenyReason.REVOKED_TOKEN)
        assert decision.reason.status_code == 403

    def test_invalid_token_is_403(self, registry, tokens) -> None:
        decision = authenticate("Bearer not-a-token", registry, tokens)
        assert decision == Deny(DenyReason.INVALID_TOKEN)
        assert decision.reason.status_code == 403

    def test_expired_token_is_403(self, registry) -> None:
        expired = TokenService(SECRET, access_ttl_seconds=-5)
        token = expired.issue_access_token(_user())
        decision = authenticate(f"Bearer {token}", registry, expired)
        assert decision == Deny(DenyReason.INVALID_TOKEN)

    def test_refresh_token_is_403(self, registry, tokens) -> None:
        token = tokens.issue_refresh_token(_user())
        assert authenticate(f"Bearer {token}", registry, tokens) == Deny(DenyReason.INVALID_TOKEN)


class TestAuthorize:
    def test_admin_only_rejects_user(self) -> None:
        decision = authorize(_claims(Role.user), {Role.admin})
        assert decision == Deny(DenyReason.INSUFFICIENT_ROLE)
        assert decision.reason.status_code == 403

    def test_admin_only_accepts_admin(self) -> None:
        claims = _claims(Role.admin)
        assert authorize(claims, {Role.admin}) == Allow(claims)

    def test_multiple_roles(self) -> None:
        claims = _claims(Role.user)
        assert authorize(claims, [Role.admin, Role.user]) == Allow(claims)

    def test_missing_identity_is_403(self) -> None:
        decision = authorize(None, {Role.admin, Role.user})
        assert decision == Deny(DenyReason.MISSING_IDENTITY)
        assert decision.reason.status_code == 403

    def test_empty_allow_list_rejects_everyone(self) -> None:
        assert authorize(_claims(Role.admin), ()) == Deny(DenyReason.INSUFFICIENT_ROLE)
