"""
API routes.

Endpoints:
- GET    `/api/board`: visible feed + map + session for the current radius (`?radius_km=` selects it).
- POST   `/api/posts`: publish a new post.
- DELETE `/api/posts/{post_id}`: delete one of the signed-in user's posts.
- POST   `/api/auth/sign-in`, `/api/auth/sign-out`: session controls.
- GET    `/api/settings`: public settings for the web UI (no backend keys).

Every board-returning endpoint also returns `notices`: messages the page must
show to the user (publish/delete/sign-in failures).
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from nearneeds.board.controller import BoardController
from nearneeds.board.notices import NoticeQueue
from nearneeds.domain.models import Credentials

router = APIRouter()


class PublishRequest(BaseModel):
    text: str


class SignInRequest(BaseModel):
    email: str
    password: str


def _controller(request: Request) -> BoardController:
    return request.app.state.controller


def _notices(request: Request) -> NoticeQueue:
    return request.app.state.notices


def board_payload(request: Request, *, drain_notices: bool = True) -> dict[str, Any]:
    """Serialize the current board snapshot (plus pending notices)."""
    data = _controller(request).snapshot().model_dump(mode="json")
    data["notices"] = _notices(request).drain() if drain_notices else []
    return data


@router.get("/api/board")
def get_board(request: Request, radius_km: int | None = None) -> dict:
    """Return the board as seen from the current location within `radius_km`."""
    if radius_km is not None:
        try:
            _controller(request).set_radius(radius_km)
        except ValueError as e:
            raise HTTPException(
                status_code=400,
                detail={"code": "VALIDATION_ERROR", "message": str(e)},
            ) from e
    return board_payload(request)


@router.post("/api/posts")
async def post_publish(request: Request, body: PublishRequest) -> dict:
    """Publish `text` at the current location; see `outcome` for what happened."""
    outcome = await _controller(request).publish(body.text)
    return {**board_payload(request), "outcome": outcome.value}


@router.delete("/api/posts/{post_id}")
async def delete_post(request: Request, post_id: int) -> dict:
    deleted = await _controller(request).delete(post_id)
    return {**board_payload(request), "deleted": deleted}


@router.post("/api/auth/sign-in")
async def post_sign_in(request: Request, body: SignInRequest) -> dict:
    ok = await _controller(request).sign_in(lambda: Credentials(email=body.email, password=body.password))
    return {**board_payload(request), "ok": ok}


@router.post("/api/auth/sign-out")
async def post_sign_out(request: Request) -> dict:
    await _controller(request).sign_out()
    return board_payload(request)


@router.get("/api/settings")
def get_public_settings(request: Request) -> dict:
    """Return safe-to-expose settings for UI defaults (backend keys removed)."""
    settings = request.app.state.settings
    return {
        "app": {"name": settings.app.name, "timezone": settings.app.timezone},
        "board": settings.board.model_dump(mode="json"),
        "feed": settings.feed.model_dump(mode="json"),
        "map": settings.map.model_dump(mode="json"),
    }
