"""
Timezone normalization and display formatting.

The backend returns `created_at` as ISO-8601 strings, usually in UTC. We keep
datetimes timezone-aware everywhere (a naive value is assumed to be UTC) and
only convert to the configured display timezone when rendering a post.
"""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo


def ensure_tz(dt: datetime, timezone: str) -> datetime:
    """Ensure `dt` has tzinfo; attach `timezone` if naive."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=ZoneInfo(timezone))
    return dt


def format_timestamp(dt: datetime, timezone: str) -> str:
    """Render `dt` in `timezone` as `YYYY-MM-DD HH:MM`."""
    local = ensure_tz(dt, "UTC").astimezone(ZoneInfo(timezone))
    return local.strftime("%Y-%m-%d %H:%M")
