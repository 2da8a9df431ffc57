"""
Session gate.

Tracks who is signed in so the board can decide which affordances to offer:
publishing (when a session is required) and the per-post delete button. This is
UX only; the backend's row-level security is the actual authorization check.
"""

from __future__ import annotations

import logging
from typing import Callable

from nearneeds.backend.client import BackendError, BoardBackend
from nearneeds.board.notices import Notifier
from nearneeds.board.state import BoardState
from nearneeds.domain.models import Credentials, Post, Session

logger = logging.getLogger(__name__)

CredentialsPrompt = Callable[[], Credentials | None]


class SessionGate:
    def __init__(self, backend: BoardBackend, state: BoardState, notifier: Notifier):
        self._backend = backend
        self._state = state
        self._notifier = notifier
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def session(self) -> Session | None:
        return self._state.session

    @property
    def subscribed(self) -> bool:
        return self._unsubscribe is not None

    def _on_change(self, session: Session | None) -> None:
        self._state.session = session

    async def start(self) -> None:
        """Read the current session once, then follow change notifications."""
        try:
            self._state.session = await self._backend.get_session()
        except BackendError as exc:
            logger.warning("Could not read the current session: %s", str(exc))
            self._state.session = None
        if self._unsubscribe is None:
            self._unsubscribe = self._backend.on_session_change(self._on_change)

    def stop(self) -> None:
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()

    async def sign_in(self, prompt: CredentialsPrompt) -> bool:
        """Ask `prompt` for credentials and sign in; errors go to the notifier."""
        try:
            credentials = prompt()
        except ValueError as exc:
            self._notifier.alert(f"Invalid credentials: {exc}")
            return False
        if credentials is None:
            return False

        try:
            session = await self._backend.sign_in_with_password(credentials)
        except BackendError as exc:
            logger.info("Sign-in failed: %s", str(exc))
            self._notifier.alert(f"Sign-in failed: {exc}")
            return False

        self._state.session = session
        return True

    async def sign_out(self) -> None:
        try:
            await self._backend.sign_out()
        except BackendError as exc:
            logger.warning("Sign-out call failed (session cleared locally): %s", str(exc))
        self._state.session = None

    def can_delete(self, post: Post) -> bool:
        session = self._state.session
        return session is not None and post.owner is not None and post.owner == session.user_id
