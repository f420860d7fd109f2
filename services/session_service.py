"""
Session gate.

Two states:
- UNAUTHENTICATED (initial)
- AUTHENTICATED

Transitions:
- UNAUTHENTICATED -> AUTHENTICATED: successful remote credential check, or a
  persisted token/user pair restored at startup
- AUTHENTICATED -> UNAUTHENTICATED: user-confirmed logout, or forced expiry after
  an authorization failure
- AUTHENTICATED -> AUTHENTICATED: a new login passes through UNAUTHENTICATED first

The token/user pair is persisted through SessionStore so the session survives reloads.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional

from domain.user import User
from repositories import auth_repository
from repositories.client import CrmApiClient
from repositories.session_store import SessionStore, StoredSession
from services.errors import ConfirmationRequired, NotAuthenticated

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


SessionListener = Callable[[SessionState], None]


class SessionGate:
    """Holds authentication state and the identity used for role-gated actions."""

    def __init__(self, store: SessionStore) -> None:
        self._store = store
        self._session: Optional[StoredSession] = None
        self._listeners: List[SessionListener] = []

    @property
    def state(self) -> SessionState:
        return SessionState.AUTHENTICATED if self._session else SessionState.UNAUTHENTICATED

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def user(self) -> Optional[User]:
        return self._session.user if self._session else None

    def token(self) -> Optional[str]:
        """Token provider for the API client."""
        return self._session.access_token if self._session else None

    def require_user(self) -> User:
        if self._session is None:
            raise NotAuthenticated("Please log in to continue")
        return self._session.user

    def on_change(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def _transition(self, session: Optional[StoredSession]) -> None:
        before = self.state
        self._session = session
        if self.state is not before:
            for listener in list(self._listeners):
                listener(self.state)

    def restore(self) -> SessionState:
        """Read the persisted session, if any."""

        stored = self._store.load()
        if stored is not None:
            logger.info("Restored session for %s", stored.user.username)
        self._transition(stored)
        return self.state

    async def login(self, client: CrmApiClient, username: str, password: str) -> User:
        """
        Authenticate against the service and persist the session.

        Raises:
            InvalidCredentials: If the service rejects the credentials
            ApiError: On transport failures
        """

        result = await auth_repository.login(client, username, password)
        session = StoredSession(access_token=result.access_token, user=result.user)
        if self._session is not None:
            # Listeners see the old session end before the new one starts.
            logger.info("Replacing session for %s", self._session.user.username)
            self._transition(None)
        self._store.save(session)
        logger.info("Logged in as %s (%s)", result.user.username, result.user.role.value)
        self._transition(session)
        return result.user

    def logout(self, confirmed: bool) -> None:
        """
        User-initiated logout.

        Raises:
            ConfirmationRequired: If the user did not confirm
        """

        if not confirmed:
            raise ConfirmationRequired("Are you sure you want to logout?")
        self._store.clear()
        self._transition(None)

    def expire(self, reason: str = "authorization failure") -> None:
        """Forced logout; no confirmation."""

        if self._session is None:
            return
        logger.warning("Session for %s expired: %s", self._session.user.username, reason)
        self._store.clear()
        self._transition(None)
