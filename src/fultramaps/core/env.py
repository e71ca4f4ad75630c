"""
`.env` loading and project-relative paths.

Provider keys (`GOOGLE_MAPS_API_KEY`, `HERE_API_KEY`) usually live in a
repo-local `.env` file, and the cache directory in settings is relative
(`.cache/fultramaps`). Both need a stable anchor whether the API server or the
CLI is started, and from whichever working directory.

Root lookup order:
1. `FULTRAMAPS_PROJECT_ROOT`
2. the directory holding `FULTRAMAPS_ENV_FILE`
3. the nearest parent of the cwd, then of this module, that has a `.env`,
   a `.git`, or a `pyproject.toml` next to `src/`
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Iterator

from dotenv import load_dotenv


def _is_root(path: Path) -> bool:
    return (
        (path / ".env").is_file()
        or (path / ".git").exists()
        or ((path / "pyproject.toml").is_file() and (path / "src").is_dir())
    )


def _search_starts() -> Iterator[Path]:
    yield Path.cwd().resolve()
    yield Path(__file__).resolve().parent


@lru_cache
def get_project_root() -> Path:
    """Best-guess project root (cached)."""
    override = os.getenv("FULTRAMAPS_PROJECT_ROOT")
    if override:
        return Path(override).expanduser().resolve()
    env_file = os.getenv("FULTRAMAPS_ENV_FILE")
    if env_file:
        return Path(env_file).expanduser().resolve().parent

    for start in _search_starts():
        for candidate in (start, *start.parents):
            if _is_root(candidate):
                return candidate
    return Path.cwd().resolve()


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load the project's `.env` once, without overriding the process environment.

    Returns the file that was loaded, or None.
    """
    explicit = os.getenv("FULTRAMAPS_ENV_FILE")
    env_path = Path(explicit).expanduser().resolve() if explicit else get_project_root() / ".env"
    if not env_path.is_file():
        return None
    load_dotenv(dotenv_path=env_path, override=False)
    return env_path


def resolve_project_path(path: str | Path) -> Path:
    """Anchor a relative path at the project root; absolute paths pass through."""
    p = Path(path).expanduser()
    return p if p.is_absolute() else (get_project_root() / p).resolve()
