"""
Board controller.

The root object of a running board. It owns the application state and wires
the components together:
- `FeedStore` + `FeedRefresher` (polling, cancelled on `stop()`),
- `LocationAcquirer` (ambient fix at startup, fresh fix per publish),
- `SessionGate` (subscription released on `stop()`),
- `PublishWorkflow`.

Views (the FastAPI app, the CLI) call its handlers and render `snapshot()`.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from pydantic import BaseModel

from nearneeds.backend.client import BackendError, BoardBackend, SupabaseBackend
from nearneeds.board.map_view import MapView, build_map_view
from nearneeds.board.notices import Notifier
from nearneeds.board.publish import PublishOutcome, PublishWorkflow
from nearneeds.board.session import CredentialsPrompt, SessionGate
from nearneeds.board.state import BoardState, visible_posts
from nearneeds.config.settings import Settings
from nearneeds.core.cache import FileCache
from nearneeds.core.env import resolve_project_path
from nearneeds.core.time import format_timestamp
from nearneeds.domain.models import Coordinate, Post
from nearneeds.feed.store import FeedRefresher, FeedStore
from nearneeds.location.acquirer import LocationAcquirer, LocationPolicy, build_location_acquirer

logger = logging.getLogger(__name__)

DELETE_CONFIRM_MESSAGE = "Delete this post?"


class PostView(BaseModel):
    id: int
    text: str
    created_at: datetime
    created_at_display: str
    lat: float | None = None
    lng: float | None = None
    can_delete: bool = False


class BoardSnapshot(BaseModel):
    """Everything a view needs to render the board once."""

    posts: list[PostView]
    total_posts: int
    radius_km: int
    radius_options_km: list[int]
    location: Coordinate | None
    map: MapView | None
    signed_in: bool
    user_email: str | None = None
    submitting: bool
    input_text: str
    feed_error: str | None = None


class BoardController:
    def __init__(
        self,
        settings: Settings,
        *,
        backend: BoardBackend,
        acquirer: LocationAcquirer,
        notifier: Notifier,
    ):
        self._settings = settings
        self._backend = backend
        self._acquirer = acquirer
        self._notifier = notifier

        self.state = BoardState(radius_km=settings.board.default_radius_km)
        self.feed = FeedStore(backend)
        self.session = SessionGate(backend, self.state, notifier)
        self._refresher = FeedRefresher(self.feed, settings.feed.refresh_interval_seconds)
        self._ambient_policy = LocationPolicy.from_settings(settings.location.ambient)
        self._publisher = PublishWorkflow(
            backend=backend,
            acquirer=acquirer,
            feed=self.feed,
            notifier=notifier,
            settings=settings.board,
            fresh_policy=LocationPolicy.from_settings(settings.location.fresh),
        )
        self._ambient_task: asyncio.Task[None] | None = None

    # -- lifecycle --------------------------------------------------------

    async def start(self, *, watch: bool = True) -> None:
        """Start the board.

        The feed is loaded once before returning. With `watch` it is then polled
        and the ambient location resolves in the background; without it
        (one-shot CLI commands) the location is awaited inline instead.
        """
        await self.session.start()
        await self.feed.refresh()
        if watch:
            self._refresher.start()
            self._ambient_task = asyncio.create_task(
                self._acquire_ambient_location(), name="nearneeds-ambient-location"
            )
        else:
            await self._acquire_ambient_location()

    async def stop(self) -> None:
        await self._refresher.stop()
        self.session.stop()
        task, self._ambient_task = self._ambient_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def __aenter__(self) -> "BoardController":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Stop the board and release the backend connection."""
        await self.stop()
        await self._backend.aclose()

    async def _acquire_ambient_location(self) -> None:
        result = await self._acquirer.acquire(self._ambient_policy)
        # A publish may already have stored a fresher fix.
        if result.available and self.state.location is None:
            self.state.location = result.coordinate
        elif not result.available:
            logger.debug("No ambient location (%s); showing the unfiltered feed.", result.reason)

    # -- handlers ---------------------------------------------------------

    def set_radius(self, radius_km: int) -> None:
        options = self._settings.board.radius_options_km
        if radius_km not in options:
            raise ValueError(f"radius_km must be one of {options}, got {radius_km}")
        self.state.radius_km = radius_km

    def set_input(self, text: str) -> None:
        self.state.input_text = text

    async def refresh(self) -> bool:
        return await self.feed.refresh()

    async def publish(self, text: str | None = None) -> PublishOutcome:
        if text is not None and not self.state.submitting:
            self.state.input_text = text
        return await self._publisher.publish(self.state)

    async def delete(self, post_id: int) -> bool:
        """Delete one of the signed-in user's posts after confirmation."""
        post = next((p for p in self.feed.posts if p.id == post_id), None)
        if post is None or not self.session.can_delete(post):
            logger.info("Delete of post %s refused: not deletable by the current session.", post_id)
            return False

        if self._settings.board.confirm_delete and not self._notifier.confirm(DELETE_CONFIRM_MESSAGE):
            return False

        try:
            await self._backend.delete_post(post_id)
        except BackendError as exc:
            logger.warning("Delete of post %s failed: %s", post_id, str(exc))
            self._notifier.alert(f"Could not delete the post: {exc}")
            return False

        await self.feed.refresh()
        return True

    async def sign_in(self, prompt: CredentialsPrompt) -> bool:
        return await self.session.sign_in(prompt)

    async def sign_out(self) -> None:
        await self.session.sign_out()

    # -- derived views ----------------------------------------------------

    def visible_posts(self) -> list[Post]:
        return visible_posts(self.feed.posts, self.state)

    def snapshot(self) -> BoardSnapshot:
        tz = self._settings.app.timezone
        posts = [
            PostView(
                id=p.id,
                text=p.text,
                created_at=p.created_at,
                created_at_display=format_timestamp(p.created_at, tz),
                lat=p.lat,
                lng=p.lng,
                can_delete=self.session.can_delete(p),
            )
            for p in self.visible_posts()
        ]
        session = self.state.session
        return BoardSnapshot(
            posts=posts,
            total_posts=len(self.feed.posts),
            radius_km=self.state.radius_km,
            radius_options_km=list(self._settings.board.radius_options_km),
            location=self.state.location,
            map=build_map_view(self.state.location, self.state.radius_km, self._settings.map),
            signed_in=session is not None,
            user_email=session.email if session else None,
            submitting=self.state.submitting,
            input_text=self.state.input_text,
            feed_error=self.feed.last_error,
        )


def build_cache(settings: Settings) -> FileCache:
    return FileCache(
        resolve_project_path(settings.cache.dir),
        enabled=settings.cache.enabled,
        default_ttl_seconds=settings.cache.default_ttl_seconds,
    )


def build_controller(settings: Settings, notifier: Notifier) -> BoardController:
    """Wire a controller against the configured backend and location provider."""
    return BoardController(
        settings,
        backend=SupabaseBackend(settings, build_cache(settings)),
        acquirer=build_location_acquirer(settings),
        notifier=notifier,
    )
