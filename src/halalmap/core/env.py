"""
Project root and `.env` handling.

Relative paths in settings (`data/halalmap.db`, `data/catalogs/places.json`) are resolved
against the project root, so the API, the CLI and the tests agree on them whatever the working
directory. The root is `HALALMAP_PROJECT_ROOT` when set; otherwise the nearest directory holding
`pyproject.toml` or `data/catalogs/`, searched upwards from the working directory and then from
the installed package.

The root's `.env` (database URL, admin token) is loaded once and never replaces variables that
are already set.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

_ROOT_MARKERS = ("pyproject.toml", "data/catalogs")


def _find_root(start: Path) -> Path | None:
    for candidate in (start, *start.parents):
        if any((candidate / marker).exists() for marker in _ROOT_MARKERS):
            return candidate
    return None


@lru_cache
def project_root() -> Path:
    override = os.getenv("HALALMAP_PROJECT_ROOT")
    if override:
        return Path(override).expanduser().resolve()
    cwd = Path.cwd().resolve()
    return _find_root(cwd) or _find_root(Path(__file__).resolve().parent) or cwd


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load `<root>/.env` once; returns its path, or None when there is no such file."""
    env_path = project_root() / ".env"
    if not env_path.is_file():
        return None
    load_dotenv(dotenv_path=env_path, override=False)
    return env_path


def resolve_project_path(path: str | Path) -> Path:
    p = Path(path).expanduser()
    return p if p.is_absolute() else (project_root() / p).resolve()
