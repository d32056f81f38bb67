"""
Environment helpers for local runs.

Catalog files handed to the CLI are usually relative (`data/old-town.json`). They are
resolved against, in order:
1. `SPOTFINDER_DATA_DIR` when set
2. the project root: nearest parent of the working directory holding a
   `pyproject.toml`, `.git` or `.env`
3. the working directory

A `.env` file (or the one named by `SPOTFINDER_ENV_FILE`) is loaded at most once and
never overrides variables that are already set.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

_ROOT_MARKERS = ("pyproject.toml", ".git", ".env")


def find_project_root(start: Path | None = None) -> Path | None:
    here = (start or Path.cwd()).resolve()
    for candidate in (here, *here.parents):
        if any((candidate / marker).exists() for marker in _ROOT_MARKERS):
            return candidate
    return None


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load the env file once; returns its path, or None when there is none."""
    explicit = os.getenv("SPOTFINDER_ENV_FILE")
    if explicit:
        env_path = Path(explicit).expanduser()
    else:
        root = find_project_root()
        env_path = (root or Path.cwd()) / ".env"
    if not env_path.is_file():
        return None
    load_dotenv(dotenv_path=env_path, override=False)
    return env_path.resolve()


def data_dir() -> Path:
    load_dotenv_if_present()
    configured = os.getenv("SPOTFINDER_DATA_DIR")
    if configured:
        return Path(configured).expanduser().resolve()
    return find_project_root() or Path.cwd().resolve()


def resolve_data_path(path: str | Path) -> Path:
    """Absolute paths pass through; relative ones resolve against `data_dir()`."""
    p = Path(path).expanduser()
    if p.is_absolute():
        return p
    return (data_dir() / p).resolve()
