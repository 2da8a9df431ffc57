"""
Radius filter over the post feed.

Fail-open in two directions:
- without a current position nothing is filtered,
- a post without coordinates is always kept (its distance is unknown).
"""

from __future__ import annotations

from typing import Iterable

from nearneeds.core.geo import haversine_km
from nearneeds.domain.models import Coordinate, Post


def is_within_radius(post: Post, current: Coordinate, radius_km: float) -> bool:
    coordinate = post.coordinate
    if coordinate is None:
        return True
    return haversine_km(current, coordinate) <= radius_km


def filter_posts(posts: Iterable[Post], current: Coordinate | None, radius_km: float) -> list[Post]:
    """Return the posts visible from `current` within `radius_km`, order preserved."""
    if current is None:
        return list(posts)
    return [p for p in posts if is_within_radius(p, current, radius_km)]
