"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- backend rows (`Post`) and insert payloads (`NewPost`)
- positions (`Coordinate`)
- authentication (`Credentials`, `Session`)

Keeping these models in one place helps:
- validation (reject bad rows and inputs early),
- typed refactors,
- consistent JSON output across CLI/API/Web.
"""

from __future__ import annotations

import time
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class Coordinate(BaseModel):
    """A geographic point in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class Post(BaseModel):
    """One bulletin board entry as stored by the backend."""

    model_config = ConfigDict(frozen=True)

    id: int
    text: str
    created_at: datetime
    lat: float | None = None
    lng: float | None = None
    owner: str | None = None

    @property
    def coordinate(self) -> Coordinate | None:
        """The post's position, or None when either half is missing or out of range."""
        if self.lat is None or self.lng is None:
            return None
        try:
            return Coordinate(lat=self.lat, lng=self.lng)
        except ValidationError:
            return None


class NewPost(BaseModel):
    """Insert payload for a new post."""

    text: str = Field(..., min_length=1)
    lat: float | None = None
    lng: float | None = None
    owner: str | None = None

    @classmethod
    def build(cls, text: str, coordinate: Coordinate | None, owner: str | None) -> "NewPost":
        return cls(
            text=text,
            lat=coordinate.lat if coordinate else None,
            lng=coordinate.lng if coordinate else None,
            owner=owner,
        )


class Credentials(BaseModel):
    """Email + password pair collected by a sign-in prompt."""

    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, email: str) -> str:
        email = email.strip()
        if not email:
            raise ValueError("email must not be empty")
        return email


class Session(BaseModel):
    """An authenticated backend session."""

    user_id: str
    email: str | None = None
    access_token: str
    refresh_token: str | None = None
    expires_at_unix: int | None = None

    def is_expired(self, *, leeway_seconds: int = 30) -> bool:
        if self.expires_at_unix is None:
            return False
        return int(time.time()) >= self.expires_at_unix - leeway_seconds
