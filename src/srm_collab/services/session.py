"""Per-user client sessions.

A :class:`ClientSession` is opened the first time a user's access token is
seen and torn down on sign-out. It carries the identity, a backend bound to the
user's token, the mutation guard and the user's cached view state. Nothing in
it is persisted.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, TypeVar

from srm_collab.backend.base import Backend
from srm_collab.core.errors import AuthError, BackendError, DuplicateMutationError
from srm_collab.core.security import decode_access_token
from srm_collab.db.time import utcnow
from srm_collab.services.streak import record_login

logger = logging.getLogger(__name__)

T = TypeVar("T")

LIKE = "like"
VOTE = "vote"

_REJECTIONS = {
    LIKE: "Post already liked",
    VOTE: "Already voted on this poll",
}


class MutationGuard:
    """Set of ``(kind, target id)`` increments already made in this session."""

    def __init__(self) -> None:
        self._claimed: set[tuple[str, str]] = set()

    def claim(self, kind: str, target_id: str) -> None:
        """Reserve an increment.

        Raises:
            DuplicateMutationError: If the same increment was already claimed.
        """
        key = (kind, target_id)
        if key in self._claimed:
            raise DuplicateMutationError(_REJECTIONS.get(kind, f"Duplicate {kind}"))
        self._claimed.add(key)

    def release(self, kind: str, target_id: str) -> None:
        self._claimed.discard((kind, target_id))

    def is_claimed(self, kind: str, target_id: str) -> bool:
        return (kind, target_id) in self._claimed

    def clear(self) -> None:
        self._claimed.clear()

    def __len__(self) -> int:
        return len(self._claimed)


@dataclass
class ClientSession:
    """State owned by one signed-in user."""

    user_id: str
    backend: Backend
    access_token: str | None = None
    email: str | None = None
    expires_at: datetime | None = None
    guard: MutationGuard = field(default_factory=MutationGuard)
    opened_at: datetime = field(default_factory=utcnow)
    closed: bool = False
    _views: dict[str, Any] = field(default_factory=dict, repr=False)

    def current_identity(self) -> str | None:
        """Return the user id, or None once the session has been closed."""
        return None if self.closed else self.user_id

    def require_identity(self) -> str:
        user_id = self.current_identity()
        if user_id is None:
            raise AuthError("Session has been signed out")
        return user_id

    def view(self, name: str, factory: Callable[[], T]) -> T:
        """Return the cached view ``name``, creating it on first use."""
        if name not in self._views:
            self._views[name] = factory()
        return self._views[name]

    def cached_view(self, name: str) -> Any | None:
        return self._views.get(name)

    def store_view(self, name: str, value: Any) -> None:
        self._views[name] = value

    def drop_view(self, name: str) -> None:
        self._views.pop(name, None)

    def close(self) -> None:
        self.closed = True
        self.guard.clear()
        self._views.clear()


class SessionRegistry:
    """Open sessions keyed by user id."""

    def __init__(self, backend: Backend, *, track_logins: bool = True) -> None:
        """Initialize the registry.

        Args:
            backend: Root backend; each session gets a copy bound to its token.
            track_logins: Record a login streak day whenever a session opens.
        """
        self.backend = backend
        self.track_logins = track_logins
        self._sessions: dict[str, ClientSession] = {}

    async def resolve(self, access_token: str) -> ClientSession:
        """Return the session for a token, opening one on first use.

        Raises:
            AuthError: If the token cannot be verified.
        """
        claims = decode_access_token(access_token)
        self.prune_expired()
        session = self._sessions.get(claims.user_id)

        if session is not None and not session.closed:
            if session.access_token != access_token:
                # Refreshed token for the same user keeps the session state.
                session.access_token = access_token
                session.expires_at = claims.expires_at
                session.backend = self.backend.bind(access_token)
            return session

        session = ClientSession(
            user_id=claims.user_id,
            backend=self.backend.bind(access_token),
            access_token=access_token,
            email=claims.email,
            expires_at=claims.expires_at,
        )
        self._sessions[claims.user_id] = session
        logger.info("Opened session for user %s", claims.user_id)

        if self.track_logins:
            try:
                await record_login(session)
            except BackendError as e:
                logger.warning("Could not record login for %s: %s", claims.user_id, e)

        return session

    def prune_expired(self, now: datetime | None = None) -> int:
        """Close sessions whose access token has expired. Returns how many."""
        now = now or utcnow()
        expired = [
            user_id
            for user_id, session in self._sessions.items()
            if session.expires_at is not None and session.expires_at <= now
        ]
        for user_id in expired:
            self.close(user_id)
        return len(expired)

    def get(self, user_id: str) -> ClientSession | None:
        return self._sessions.get(user_id)

    def close(self, user_id: str) -> bool:
        """Sign a user out. Returns False when no session was open."""
        session = self._sessions.pop(user_id, None)
        if session is None:
            return False
        session.close()
        logger.info("Closed session for user %s", user_id)
        return True

    def close_all(self) -> None:
        for user_id in list(self._sessions):
            self.close(user_id)

    def __len__(self) -> int:
        return len(self._sessions)


__all__ = ["LIKE", "VOTE", "ClientSession", "MutationGuard", "SessionRegistry"]
