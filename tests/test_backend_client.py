import json

import httpx
import pytest

from nearneeds.backend.client import BackendError, SupabaseBackend
from nearneeds.core.cache import FileCache
from nearneeds.domain.models import Credentials, NewPost, Session

BACKEND_URL = "https://demo.backend.test"

TOKEN_PAYLOAD = {
    "access_token": "user-token",
    "refresh_token": "refresh-1",
    "expires_in": 3600,
    "user": {"id": "user-42", "email": "me@example.test"},
}


@pytest.fixture
def backend_settings(settings):
    backend = settings.backend.model_copy(update={"url": BACKEND_URL, "anon_key": "anon-key"})
    return settings.model_copy(update={"backend": backend})


class Recorder:
    """MockTransport handler that replays canned responses and records requests."""

    def __init__(self, *responses: httpx.Response):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)


def _backend(settings, recorder: Recorder, cache: FileCache | None = None) -> SupabaseBackend:
    return SupabaseBackend(settings, cache, transport=httpx.MockTransport(recorder))


@pytest.mark.asyncio
async def test_fetch_posts_queries_table_newest_first(backend_settings):
    rows = [
        {"id": 2, "text": "need milk", "created_at": "2026-01-05T10:00:00+00:00", "lat": 1.5, "lng": 2.5, "owner": "u"},
        {"id": 1, "text": "old", "created_at": "2026-01-04T10:00:00Z", "lat": None, "lng": None, "owner": None},
    ]
    recorder = Recorder(httpx.Response(200, json=rows))
    backend = _backend(backend_settings, recorder)

    posts = await backend.fetch_posts()
    await backend.aclose()

    assert [p.id for p in posts] == [2, 1]
    assert posts[1].coordinate is None
    request = recorder.requests[0]
    assert request.method == "GET"
    assert request.url.path == "/rest/v1/tasks"
    assert request.url.params["select"] == "id,text,created_at,lat,lng,owner"
    assert request.url.params["order"] == "id.desc"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["Authorization"] == "Bearer anon-key"


@pytest.mark.asyncio
async def test_error_responses_carry_backend_message(backend_settings):
    recorder = Recorder(httpx.Response(400, json={"message": "column tasks.owner does not exist"}))
    backend = _backend(backend_settings, recorder)

    with pytest.raises(BackendError, match="column tasks.owner does not exist") as info:
        await backend.fetch_posts()
    assert info.value.status_code == 400


@pytest.mark.asyncio
async def test_malformed_rows_are_reported(backend_settings):
    recorder = Recorder(httpx.Response(200, json=[{"id": "x"}]))
    backend = _backend(backend_settings, recorder)

    with pytest.raises(BackendError, match="malformed posts"):
        await backend.fetch_posts()


@pytest.mark.asyncio
async def test_missing_configuration_fails_without_a_request(settings):
    recorder = Recorder()
    backend = _backend(settings.model_copy(update={"backend": settings.backend.model_copy(update={"url": ""})}), recorder)

    with pytest.raises(BackendError, match="not configured"):
        await backend.fetch_posts()
    assert recorder.requests == []


@pytest.mark.asyncio
async def test_insert_post_sends_row(backend_settings):
    recorder = Recorder(httpx.Response(201))
    backend = _backend(backend_settings, recorder)

    await backend.insert_post(NewPost(text="need milk", lat=10, lng=20, owner="user-42"))

    request = recorder.requests[0]
    assert request.method == "POST"
    assert request.headers["Prefer"] == "return=minimal"
    assert json.loads(request.content) == [{"text": "need milk", "lat": 10.0, "lng": 20.0, "owner": "user-42"}]


@pytest.mark.asyncio
async def test_zero_row_delete_is_a_failure(backend_settings):
    recorder = Recorder(httpx.Response(200, json=[{"id": 7}]), httpx.Response(200, json=[]))
    backend = _backend(backend_settings, recorder)

    await backend.delete_post(7)
    assert recorder.requests[0].url.params["id"] == "eq.7"

    with pytest.raises(BackendError, match="could not be deleted"):
        await backend.delete_post(8)


@pytest.mark.asyncio
async def test_sign_in_notifies_and_persists_session(backend_settings, tmp_path):
    cache = FileCache(tmp_path)
    recorder = Recorder(httpx.Response(200, json=TOKEN_PAYLOAD), httpx.Response(200, json=[]))
    backend = _backend(backend_settings, recorder, cache)
    seen: list[Session | None] = []
    backend.on_session_change(seen.append)

    session = await backend.sign_in_with_password(Credentials(email=" me@example.test ", password="pw"))

    assert session.user_id == "user-42"
    assert [s.user_id if s else None for s in seen] == ["user-42"]
    token_request = recorder.requests[0]
    assert token_request.url.path == "/auth/v1/token"
    assert token_request.url.params["grant_type"] == "password"
    assert json.loads(token_request.content) == {"email": "me@example.test", "password": "pw"}

    await backend.fetch_posts()
    assert recorder.requests[1].headers["Authorization"] == "Bearer user-token"

    reopened = _backend(backend_settings, Recorder(), cache)
    restored = await reopened.get_session()
    assert restored is not None
    assert restored.user_id == "user-42"


@pytest.mark.asyncio
async def test_unsubscribed_listener_is_not_called(backend_settings):
    backend = _backend(backend_settings, Recorder(httpx.Response(200, json=TOKEN_PAYLOAD)))
    seen: list[Session | None] = []
    unsubscribe = backend.on_session_change(seen.append)
    unsubscribe()

    await backend.sign_in_with_password(Credentials(email="me@example.test", password="pw"))

    assert seen == []


@pytest.mark.asyncio
async def test_rejected_token_signs_out_locally(backend_settings):
    recorder = Recorder(
        httpx.Response(200, json=TOKEN_PAYLOAD),
        httpx.Response(401, json={"message": "JWT expired"}),
    )
    backend = _backend(backend_settings, recorder)
    seen: list[Session | None] = []
    await backend.sign_in_with_password(Credentials(email="me@example.test", password="pw"))
    backend.on_session_change(seen.append)

    with pytest.raises(BackendError, match="JWT expired"):
        await backend.fetch_posts()

    assert seen == [None]
    assert await backend.get_session() is None


@pytest.mark.asyncio
async def test_sign_out_clears_session_even_when_the_call_fails(backend_settings, tmp_path):
    cache = FileCache(tmp_path)
    recorder = Recorder(
        httpx.Response(200, json=TOKEN_PAYLOAD),
        httpx.Response(500, json={"msg": "logout unavailable"}),
    )
    backend = _backend(backend_settings, recorder, cache)
    await backend.sign_in_with_password(Credentials(email="me@example.test", password="pw"))

    with pytest.raises(BackendError, match="logout unavailable"):
        await backend.sign_out()

    assert recorder.requests[1].url.path == "/auth/v1/logout"
    assert recorder.requests[1].headers["Authorization"] == "Bearer user-token"
    assert await backend.get_session() is None
    assert await _backend(backend_settings, Recorder(), cache).get_session() is None


@pytest.mark.asyncio
async def test_expired_cached_session_is_refreshed(backend_settings, tmp_path):
    cache = FileCache(tmp_path)
    stale = Session(user_id="user-42", access_token="old", refresh_token="refresh-0", expires_at_unix=0)
    cache.set("auth", BACKEND_URL, stale.model_dump(mode="json"))
    recorder = Recorder(httpx.Response(200, json=TOKEN_PAYLOAD))
    backend = _backend(backend_settings, recorder, cache)

    session = await backend.get_session()

    assert session is not None
    assert session.access_token == "user-token"
    request = recorder.requests[0]
    assert request.url.params["grant_type"] == "refresh_token"
    assert json.loads(request.content) == {"refresh_token": "refresh-0"}


@pytest.mark.asyncio
async def test_failed_refresh_drops_the_session(backend_settings, tmp_path):
    cache = FileCache(tmp_path)
    stale = Session(user_id="user-42", access_token="old", refresh_token="refresh-0", expires_at_unix=0)
    cache.set("auth", BACKEND_URL, stale.model_dump(mode="json"))
    backend = _backend(backend_settings, Recorder(httpx.Response(400, json={"error_description": "Invalid Refresh Token"})), cache)

    assert await backend.get_session() is None
