"""
Board application state.

One `BoardState` belongs to one running board (a web app process or a CLI
invocation). Handlers in `nearneeds.board.controller` are the only writers.
The visible feed is never stored here: `visible_posts()` derives it from the
feed and this state on demand.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from nearneeds.domain.models import Coordinate, Post, Session
from nearneeds.feed.geofilter import filter_posts


class PublishStatus(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"


@dataclass
class BoardState:
    radius_km: int
    location: Coordinate | None = None
    session: Session | None = None
    input_text: str = ""
    publish_status: PublishStatus = PublishStatus.IDLE

    @property
    def submitting(self) -> bool:
        return self.publish_status is PublishStatus.SUBMITTING


def visible_posts(posts: Iterable[Post], state: BoardState) -> list[Post]:
    """The subset of `posts` shown for the state's location and radius."""
    return filter_posts(posts, state.location, state.radius_km)
