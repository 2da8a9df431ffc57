"""
Small on-disk JSON store with expiry.

The backend client keeps the signed-in session here so that `nearneeds sign-in`
followed by `nearneeds post` behaves like a browser tab that remembers its login.

Layout: `<base_dir>/<namespace>/<sha256(namespace:key)>.json`, one envelope per
entry carrying its absolute expiry time. Unreadable or expired envelopes read
as missing.
"""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass
from hashlib import sha256
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class CacheEntry:
    stored_at_unix: int
    expires_at_unix: int
    value: Any

    def is_expired(self, now_unix: int) -> bool:
        return now_unix > self.expires_at_unix


class FileCache:
    """JSON values stored per (namespace, key) under `base_dir`."""

    def __init__(self, base_dir: Path, enabled: bool = True, default_ttl_seconds: int = 86400):
        self._base_dir = Path(base_dir)
        self._enabled = enabled
        self._default_ttl_seconds = int(default_ttl_seconds)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _path(self, namespace: str, key: str) -> Path:
        name = sha256(f"{namespace}:{key}".encode("utf-8")).hexdigest()
        return self._base_dir / namespace / f"{name}.json"

    @staticmethod
    def _read(path: Path) -> CacheEntry | None:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            return CacheEntry(
                stored_at_unix=int(raw["stored_at_unix"]),
                expires_at_unix=int(raw["expires_at_unix"]),
                value=raw["value"],
            )
        except (OSError, ValueError, KeyError, TypeError):
            return None

    def get(self, namespace: str, key: str) -> Any | None:
        """Return the stored value, or None when missing, expired or disabled."""
        if not self._enabled:
            return None
        entry = self._read(self._path(namespace, key))
        if entry is None or entry.is_expired(int(time.time())):
            return None
        return entry.value

    def set(self, namespace: str, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Store `value` (must be JSON-serializable); the file is replaced atomically."""
        if not self._enabled:
            return
        now = int(time.time())
        ttl = self._default_ttl_seconds if ttl_seconds is None else int(ttl_seconds)
        entry = CacheEntry(stored_at_unix=now, expires_at_unix=now + ttl, value=value)

        path = self._path(namespace, key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(asdict(entry), ensure_ascii=False), encoding="utf-8")
        tmp.replace(path)

    def delete(self, namespace: str, key: str) -> None:
        if not self._enabled:
            return
        self._path(namespace, key).unlink(missing_ok=True)
