"""
Publish workflow.

IDLE -> SUBMITTING -> (published | failed) -> IDLE

The fresh location fetch always completes before the insert is issued, so the
stored coordinate is where the poster was when they pressed submit.
"""

from __future__ import annotations

import logging
from enum import Enum

from nearneeds.backend.client import BackendError, BoardBackend
from nearneeds.board.notices import Notifier
from nearneeds.board.state import BoardState, PublishStatus
from nearneeds.config.settings import BoardSettings
from nearneeds.domain.models import NewPost
from nearneeds.feed.store import FeedStore
from nearneeds.location.acquirer import LocationAcquirer, LocationPolicy

logger = logging.getLogger(__name__)

SIGN_IN_REQUIRED_MESSAGE = "You must sign in to publish."


class PublishOutcome(str, Enum):
    SKIPPED = "skipped"
    BUSY = "busy"
    NEEDS_SIGN_IN = "needs_sign_in"
    PUBLISHED = "published"
    FAILED = "failed"


class PublishWorkflow:
    def __init__(
        self,
        *,
        backend: BoardBackend,
        acquirer: LocationAcquirer,
        feed: FeedStore,
        notifier: Notifier,
        settings: BoardSettings,
        fresh_policy: LocationPolicy,
    ):
        self._backend = backend
        self._acquirer = acquirer
        self._feed = feed
        self._notifier = notifier
        self._settings = settings
        self._fresh_policy = fresh_policy

    async def publish(self, state: BoardState) -> PublishOutcome:
        """Publish `state.input_text` as a new post."""
        if state.submitting:
            return PublishOutcome.BUSY

        text = state.input_text.strip()
        if len(text) < self._settings.min_text_length:
            return PublishOutcome.SKIPPED

        session = state.session
        if self._settings.require_session_to_publish and session is None:
            self._notifier.alert(SIGN_IN_REQUIRED_MESSAGE)
            return PublishOutcome.NEEDS_SIGN_IN

        state.publish_status = PublishStatus.SUBMITTING
        try:
            location = await self._acquirer.acquire(self._fresh_policy)
            if location.available:
                state.location = location.coordinate

            post = NewPost.build(text, location.coordinate, session.user_id if session else None)
            try:
                await self._backend.insert_post(post)
            except BackendError as exc:
                logger.warning("Publishing failed: %s", str(exc))
                self._notifier.alert(f"Could not publish: {exc}")
                return PublishOutcome.FAILED

            state.input_text = ""
            await self._feed.refresh()
            return PublishOutcome.PUBLISHED
        finally:
            state.publish_status = PublishStatus.IDLE
