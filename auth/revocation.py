"""
auth/revocation.py -- Registry of explicitly revoked tokens.

Signed tokens are self-contained: signature validity alone cannot say "this
token was logged out before it expired". The registry fills that gap. Every
authenticated request checks it before the signature is verified.

Known limitation: entries are raw token strings and are never pruned, so the
set grows for the lifetime of the process. A restart clears it, which also
means logged-out tokens become usable again until their natural expiry if the
process restarts with the same SECRET_KEY.
"""

from __future__ import annotations

import threading


class RevocationRegistry:
    """In-memory set of revoked raw token strings. Thread-safe, O(1) lookups."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._revoked: set[str] = set()

    def revoke(self, token: str) -> None:
        """Mark token as revoked. Revoking twice is a no-op."""
        with self._lock:
            self._revoked.add(token)

    def is_revoked(self, token: str) -> bool:
        with self._lock:
            return token in self._revoked

    def __len__(self) -> int:
        with self._lock:
            return len(self._revoked)
