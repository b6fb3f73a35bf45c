"""
auth/store.py -- In-memory persistence layer for User records.

Pattern: Repository. UserStore owns the email -> User mapping; route and
dependency code never touch the dict directly.

Storage lives for the process lifetime only. A restart forgets every user.

Concurrency: FastAPI runs sync handlers in a thread pool, so every access
goes through one lock. Reads hand back copies -- a caller mutating the
returned User cannot change the stored record behind the lock's back.

Layer rule: no imports from api/ or characters/.
"""

from __future__ import annotations

import threading
from dataclasses import replace

from auth.models import Role, User
from core.ids import MillisecondIds


class UserExistsError(Exception):
    """Raised by create_user() when the email is already registered."""


class UserStore:
    """Repository for User entities keyed by email.

    Usage:
        store = UserStore()
        user = store.create_user("a@x.com", hash_password("secret1"))
        store.get_by_email("a@x.com")
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._users: dict[str, User] = {}
        self._ids = MillisecondIds()

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_users(self) -> bool:
        return len(self) > 0

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email. Returns None if not found."""
        with self._lock:
            user = self._users.get(email)
            return replace(user) if user is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, email: str, password_digest: str, role: Role = Role.user) -> User:
        """Insert a new user and return a copy of the stored record.

        Raises UserExistsError if the email is already registered. The check
        and the insert happen under one lock acquisition, so two concurrent
        registrations for the same email cannot both succeed.
        """
        with self._lock:
            if email in self._users:
                raise UserExistsError(email)
            user = User(
                id=self._ids.next_id(),
                email=email,
                password_digest=password_digest,
                role=role,
            )
            self._users[email] = user
            return replace(user)

    def set_refresh_token(self, email: str, token: str) -> bool:
        """Store token as the user's current refresh token, replacing any previous one.

        Returns True if the user exists, False otherwise.
        """
        with self._lock:
            user = self._users.get(email)
            if user is None:
                return False
            user.refresh_token = token
            return True

    def clear_refresh_token(self, email: str) -> bool:
        """Forget the user's stored refresh token. Returns False if the user is unknown."""
        with self._lock:
            user = self._users.get(email)
            if user is None:
                return False
            user.refresh_token = None
            return True
