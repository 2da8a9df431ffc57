"""
Backend client (Supabase-style backend-as-a-service).

This module is responsible only for:
- reading, inserting and deleting posts through the PostgREST data API,
- password sign-in, token refresh and sign-out through the GoTrue auth API,
- keeping the current session (persisted in the on-disk cache) and notifying
  listeners when it changes.

Authorization is enforced by the backend's row-level security; nothing here
decides who may delete what.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Protocol

import httpx
from pydantic import TypeAdapter, ValidationError

from nearneeds.config.settings import Settings
from nearneeds.core.cache import FileCache
from nearneeds.core.http import build_async_client, decode_json
from nearneeds.domain.models import Credentials, NewPost, Post, Session

logger = logging.getLogger(__name__)

_POSTS_ADAPTER = TypeAdapter(list[Post])

SessionListener = Callable[[Session | None], None]


class BackendError(RuntimeError):
    """A backend call failed; `str(exc)` is the message to show the user."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class BoardBackend(Protocol):
    """The calls the board makes against its hosted backend."""

    async def fetch_posts(self) -> list[Post]: ...

    async def insert_post(self, post: NewPost) -> None: ...

    async def delete_post(self, post_id: int) -> None: ...

    async def get_session(self) -> Session | None: ...

    async def sign_in_with_password(self, credentials: Credentials) -> Session: ...

    async def sign_out(self) -> None: ...

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]: ...

    async def aclose(self) -> None: ...


def _error_message(resp: httpx.Response) -> str:
    """Extract the most specific error message from a backend error response."""
    try:
        payload = resp.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        for key in ("message", "error_description", "msg", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    text = resp.text.strip()
    return text or f"Backend returned HTTP {resp.status_code}"


def _session_from_token_payload(payload: Any) -> Session:
    """Build a `Session` from a GoTrue token response."""
    if not isinstance(payload, dict):
        raise BackendError("Auth response is not a JSON object.")
    user = payload.get("user") or {}
    access_token = payload.get("access_token")
    user_id = user.get("id") if isinstance(user, dict) else None
    if not access_token or not user_id:
        raise BackendError("Auth response is missing access_token/user.")

    expires_at = payload.get("expires_at")
    if expires_at is None and payload.get("expires_in") is not None:
        expires_at = int(time.time()) + int(payload["expires_in"])

    return Session(
        user_id=str(user_id),
        email=user.get("email"),
        access_token=str(access_token),
        refresh_token=payload.get("refresh_token"),
        expires_at_unix=int(expires_at) if expires_at is not None else None,
    )


class SupabaseBackend:
    """PostgREST + GoTrue client with session persistence and change notifications."""

    _CACHE_NAMESPACE = "auth"

    def __init__(
        self,
        settings: Settings,
        cache: FileCache | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._settings = settings
        self._cache = cache
        self._client = build_async_client(
            base_url=settings.backend.url.rstrip("/"),
            timeout_seconds=settings.app.http_timeout_seconds,
            transport=transport,
        )
        self._session: Session | None = None
        self._session_loaded = False
        self._listeners: list[SessionListener] = []

    async def aclose(self) -> None:
        await self._client.aclose()

    # -- plumbing ---------------------------------------------------------

    def _require_config(self) -> str:
        """Return the anon key or raise if the backend is not configured."""
        anon_key = self._settings.backend.anon_key
        if not self._settings.backend.url or not anon_key:
            raise BackendError(
                "Backend is not configured. Set NEARNEEDS_BACKEND_URL and NEARNEEDS_BACKEND_ANON_KEY."
            )
        return anon_key

    def _headers(self, *, use_session: bool = True) -> dict[str, str]:
        anon_key = self._require_config()
        token = self._session.access_token if (use_session and self._session) else anon_key
        return {"apikey": anon_key, "Authorization": f"Bearer {token}"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
        use_session: bool = True,
    ) -> Any:
        request_headers = self._headers(use_session=use_session)
        if headers:
            request_headers.update(headers)

        try:
            resp = await self._client.request(method, path, params=params, json=json, headers=request_headers)
        except httpx.HTTPError as exc:
            raise BackendError(f"Backend request failed: {exc}") from exc

        if resp.status_code == 401 and use_session and self._session is not None and path.startswith("/rest/"):
            logger.info("Backend rejected the session token; signing out locally.")
            self._set_session(None)

        if resp.is_error:
            raise BackendError(_error_message(resp), status_code=resp.status_code)
        try:
            return decode_json(resp)
        except ValueError as exc:
            raise BackendError("Backend returned invalid JSON.") from exc

    def _table_path(self) -> str:
        return f"/rest/v1/{self._settings.backend.table}"

    # -- posts ------------------------------------------------------------

    async def fetch_posts(self) -> list[Post]:
        """Return every post, newest first."""
        await self.get_session()
        params = {"select": ",".join(self._settings.backend.columns), "order": "id.desc"}
        payload = await self._request("GET", self._table_path(), params=params)
        try:
            return _POSTS_ADAPTER.validate_python(payload or [])
        except ValidationError as exc:
            raise BackendError(f"Backend returned malformed posts: {exc.error_count()} error(s)") from exc

    async def insert_post(self, post: NewPost) -> None:
        await self.get_session()
        await self._request(
            "POST",
            self._table_path(),
            json=[post.model_dump()],
            headers={"Prefer": "return=minimal"},
        )

    async def delete_post(self, post_id: int) -> None:
        """Delete one post; row-level security turns a foreign post into a zero-row delete."""
        await self.get_session()
        deleted = await self._request(
            "DELETE",
            self._table_path(),
            params={"id": f"eq.{int(post_id)}"},
            headers={"Prefer": "return=representation"},
        )
        if not deleted:
            raise BackendError("Post could not be deleted.")

    # -- auth -------------------------------------------------------------

    def _cache_key(self) -> str:
        return self._settings.backend.url or "default"

    def _persist(self, session: Session | None) -> None:
        if self._cache is None:
            return
        if session is None:
            self._cache.delete(self._CACHE_NAMESPACE, self._cache_key())
        else:
            self._cache.set(self._CACHE_NAMESPACE, self._cache_key(), session.model_dump(mode="json"))

    def _set_session(self, session: Session | None) -> None:
        previous = self._session
        self._session = session
        self._session_loaded = True
        self._persist(session)

        changed = (previous is None) != (session is None) or (
            previous is not None and session is not None and previous.user_id != session.user_id
        )
        if not changed:
            return
        for listener in list(self._listeners):
            listener(session)

    def _load_cached_session(self) -> Session | None:
        if self._cache is None:
            return None
        raw = self._cache.get(self._CACHE_NAMESPACE, self._cache_key())
        if not isinstance(raw, dict):
            return None
        try:
            return Session.model_validate(raw)
        except ValidationError:
            logger.warning("Ignoring malformed cached session.")
            return None

    async def _refresh_session(self, session: Session) -> Session | None:
        if not session.refresh_token:
            return None
        try:
            payload = await self._request(
                "POST",
                "/auth/v1/token",
                params={"grant_type": "refresh_token"},
                json={"refresh_token": session.refresh_token},
                use_session=False,
            )
            return _session_from_token_payload(payload)
        except BackendError as exc:
            logger.info("Session refresh failed: %s", str(exc))
            return None

    async def get_session(self) -> Session | None:
        """Return the current session, loading it from disk and refreshing it when expired."""
        if not self._session_loaded:
            self._session = self._load_cached_session()
            self._session_loaded = True

        session = self._session
        if session is not None and session.is_expired():
            self._set_session(await self._refresh_session(session))
        return self._session

    async def sign_in_with_password(self, credentials: Credentials) -> Session:
        payload = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": credentials.email, "password": credentials.password},
            use_session=False,
        )
        session = _session_from_token_payload(payload)
        self._set_session(session)
        logger.info("Signed in as %s", session.email or session.user_id)
        return session

    async def sign_out(self) -> None:
        """Revoke the session server-side; the local session is cleared regardless."""
        session = await self.get_session()
        try:
            if session is not None:
                await self._request("POST", "/auth/v1/logout", use_session=True)
        finally:
            self._set_session(None)

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        """Register `listener`; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
