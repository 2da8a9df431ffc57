"""
Feed store and its scheduled refresh.

The store keeps the full, unfiltered post list exactly as the backend returned
it (newest first). A refresh replaces the whole list or nothing; filtering
happens elsewhere (`nearneeds.feed.geofilter`).
"""

from __future__ import annotations

import asyncio
import logging

from nearneeds.backend.client import BoardBackend
from nearneeds.domain.models import Post

logger = logging.getLogger(__name__)


class FeedStore:
    """Holds the current post list and refreshes it from the backend."""

    def __init__(self, backend: BoardBackend):
        self._backend = backend
        self._posts: tuple[Post, ...] = ()
        self._last_error: str | None = None
        self._refresh_count = 0

    @property
    def posts(self) -> tuple[Post, ...]:
        return self._posts

    @property
    def last_error(self) -> str | None:
        """Message of the most recent failed refresh, cleared by a successful one."""
        return self._last_error

    @property
    def refresh_count(self) -> int:
        return self._refresh_count

    async def refresh(self) -> bool:
        """Re-fetch every post; returns False (keeping the old list) on failure."""
        try:
            posts = await self._backend.fetch_posts()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("Feed refresh failed: %s", str(exc))
            self._last_error = str(exc) or type(exc).__name__
            return False

        # Overlapping refreshes are not coordinated: whichever resolves last wins.
        self._posts = tuple(posts)
        self._last_error = None
        self._refresh_count += 1
        return True


class FeedRefresher:
    """Refreshes a `FeedStore` every `interval_seconds` until stopped.

    The first refresh happens one interval after `start()`; the owner does the
    startup refresh itself so the first render never waits on the timer.
    """

    def __init__(self, store: FeedStore, interval_seconds: float):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._store = store
        self._interval_seconds = float(interval_seconds)
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval_seconds)
            await self._store.refresh()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="nearneeds-feed-refresh")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
