"""
Project root and `.env` handling.

The backend URL and anon key usually live in a repo-local `.env`. uvicorn and the
CLI may be started from any directory, so both the `.env` lookup and relative
settings paths (the cache dir) are anchored at the project root rather than the
working directory.

Overrides: `NEARNEEDS_PROJECT_ROOT` (root directory), `NEARNEEDS_ENV_FILE`
(explicit `.env`; its directory becomes the root).
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

_ROOT_MARKERS = (".env", ".git")


def _is_project_root(path: Path) -> bool:
    if any((path / marker).exists() for marker in _ROOT_MARKERS):
        return True
    return (path / "pyproject.toml").is_file() and (path / "src" / "nearneeds").is_dir()


def _explicit_env_file() -> Path | None:
    value = os.getenv("NEARNEEDS_ENV_FILE")
    return Path(value).expanduser().resolve() if value else None


@lru_cache
def get_project_root() -> Path:
    """Return the project root (cached); falls back to the working directory."""
    override = os.getenv("NEARNEEDS_PROJECT_ROOT")
    if override:
        return Path(override).expanduser().resolve()

    env_file = _explicit_env_file()
    if env_file is not None:
        return env_file.parent

    cwd = Path.cwd().resolve()
    return next((p for p in (cwd, *cwd.parents) if _is_project_root(p)), cwd)


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load the project `.env` once, without overriding the process environment."""
    env_path = _explicit_env_file() or get_project_root() / ".env"
    if not env_path.is_file():
        return None
    load_dotenv(dotenv_path=env_path, override=False)
    return env_path


def resolve_project_path(path: str | Path) -> Path:
    """Resolve `path` against the project root unless it is already absolute."""
    p = Path(path).expanduser()
    return p if p.is_absolute() else (get_project_root() / p).resolve()
