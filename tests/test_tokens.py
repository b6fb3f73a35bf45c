"""Unit tests for auth/tokens.py -- password hashing and TokenService.

Covers:
- bcrypt digests never equal the plaintext and verify correctly
- authenticate_user() for good, wrong and unknown credentials
- access / refresh token round trips carry the right identity
- expired, tampered, foreign-key and wrong-kind tokens raise InvalidToken
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.models import Role, User
from auth.store import UserStore
from auth.tokens import InvalidToken, TokenService, authenticate_user, hash_password, verify_password

SECRET = "unit-test-secret-key-with-enough-entropy-0123456789"


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(SECRET)


@pytest.fixture
def user() -> User:
    return User(id=1700000000000, email="a@x.com", password_digest="unused", role=Role.user)


class TestPasswordHashing:
    @pytest.mark.parametrize("password", ["secret1", "correct horse battery", "pässwörd!"])
    def test_digest_differs_from_plaintext_and_verifies(self, password: str) -> None:
        digest = hash_password(password)
        assert digest != password
        assert verify_password(password, digest)

    def test_wrong_password_does_not_verify(self) -> None:
        assert not verify_password("secret2", hash_password("secret1"))

    def test_same_password_gets_different_salts(self) -> None:
        assert hash_password("secret1") != hash_password("secret1")

    def test_malformed_digest_is_a_mismatch(self) -> None:
        assert verify_password("secret1", "not-a-bcrypt-hash") is False


class TestAuthenticateUser:
    def test_valid_credentials_return_user(self) -> None:
        store = UserStore()
        created = store.create_user("a@x.com", hash_password("secret1"))
        found = authenticate_user(store, "a@x.com", "secret1")
        assert found is not None
        assert found.id == created.id

    def test_wrong_password_returns_none(self) -> None:
        store = UserStore()
        store.create_user("a@x.com", hash_password("secret1"))
        assert authenticate_user(store, "a@x.com", "wrong-pass") is None

    def test_unknown_email_returns_none(self) -> None:
        assert authenticate_user(UserStore(), "ghost@x.com", "secret1") is None


class TestAccessTokens:
    def test_round_trip(self, tokens: TokenService, user: User) -> None:
        claims = tokens.verify_access_token(tokens.issue_access_token(user))
        assert claims.id == user.id
        assert claims.role is Role.user
        assert claims.email == user.email
        assert claims.expires_at > datetime.now(timezone.utc)

    def test_expiry_is_one_hour_by_default(self, tokens: TokenService, user: User) -> None:
        claims = tokens.verify_access_token(tokens.issue_access_token(user))
        remaining = claims.expires_at - datetime.now(timezone.utc)
        assert timedelta(minutes=59) < remaining <= timedelta(hours=1)

    def test_tokens_for_same_user_are_distinct(self, tokens: TokenService, user: User) -> None:
        assert tokens.issue_access_token(user) != tokens.issue_access_token(user)

    def test_expired_token_rejected(self, user: User) -> None:
        short = TokenService(SECRET, access_ttl_seconds=-10)
        with pytest.raises(InvalidToken):
            short.verify_access_token(short.issue_access_token(user))

    def test_foreign_secret_rejected(self, tokens: TokenService, user: User) -> None:
        other = TokenService("another-secret-key-with-enough-entropy-9876543210")
        with pytest.raises(InvalidToken):
            tokens.verify_access_token(other.issue_access_token(user))

    def test_tampered_token_rejected(self, tokens: TokenService, user: User) -> None:
        token = tokens.issue_access_token(user)
        head, body, sig = token.split(".")
        # The first signature character carries six significant bits.
        tampered = f"{head}.{body}.{'B' if sig[0] == 'A' else 'A'}{sig[1:]}"
        with pytest.raises(InvalidToken):
            tokens.verify_access_token(tampered)

    def test_garbage_rejected(self, tokens: TokenService) -> None:
        with pytest.raises(InvalidToken):
            tokens.verify_access_token("not.a.jwt")

    def test_refresh_token_is_not_an_access_token(self, tokens: TokenService, user: User) -> None:
        with pytest.raises(InvalidToken):
            tokens.verify_access_token(tokens.issue_refresh_token(user))

    def test_unknown_role_rejected(self, tokens: TokenService) -> None:
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
        forged = jwt.encode(
            {"id": 1, "role": "superuser", "email": "a@x.com", "typ": "access", "exp": exp},
            SECRET,
            algorithm="HS256",
        )
        with pytest.raises(InvalidToken):
            tokens.verify_access_token(forged)

    def test_non_integer_id_rejected(self, tokens: TokenService) -> None:
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
        forged = jwt.encode(
            {"id": "1", "role": "admin", "email": "a@x.com", "typ": "access", "exp": exp},
            SECRET,
            algorithm="HS256",
        )
        with pytest.raises(InvalidToken):
            tokens.verify_access_token(forged)


class TestRefreshTokens:
    def test_round_trip_carries_identity_only(self, tokens: TokenService, user: User) -> None:
        token = tokens.issue_refresh_token(user)
        claims = tokens.verify_refresh_token(token)
        assert claims.id == user.id
        payload = jwt.get_unverified_claims(token)
        assert "role" not in payload
        assert "email" not in payload

    def test_expiry_is_one_day_by_default(self, tokens: TokenService, user: User) -> None:
        claims = tokens.verify_refresh_token(tokens.issue_refresh_token(user))
        remaining = claims.expires_at - datetime.now(timezone.utc)
        assert timedelta(hours=23) < remaining <= timedelta(days=1)

    def test_access_token_is_not_a_refresh_token(self, tokens: TokenService, user: User) -> None:
        with pytest.raises(InvalidToken):
            tokens.verify_refresh_token(tokens.issue_access_token(user))
