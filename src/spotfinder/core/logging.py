"""
Logging setup for entry points.

The handler/formatter layout lives in the packaged `logging.yaml`; the level comes
from settings (`app.log_level`, or `SPOTFINDER_LOG_LEVEL`) unless a caller passes one
explicitly. Library modules only call `logging.getLogger(__name__)`.
"""

from __future__ import annotations

import copy
import logging
import logging.config

from spotfinder.config.settings import Settings, get_logging_config, get_settings


def configure_logging(settings: Settings | None = None, *, level: str | None = None) -> str:
    """Apply the packaged dictConfig at the requested level; returns the level used."""
    resolved = (level or (settings or get_settings()).app.log_level).upper()
    if not isinstance(logging.getLevelName(resolved), int):
        raise ValueError(f"Unknown log level: {resolved!r}")

    config = copy.deepcopy(get_logging_config())
    config.setdefault("root", {})["level"] = resolved
    for handler in config.get("handlers", {}).values():
        handler["level"] = resolved

    logging.config.dictConfig(config)
    return resolved
