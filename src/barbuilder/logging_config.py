from __future__ import annotations

import logging
import os
from typing import Optional

PACKAGE_LOGGER = "barbuilder"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"


def resolve_level(name: Optional[str], default_level: int = logging.INFO) -> int:
    """Map a level name such as ``"debug"`` to its number; unknown names give *default_level*."""
    if not name:
        return default_level
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else default_level


def configure_logging(settings=None, default_level: int = logging.INFO) -> logging.Logger:
    """Set the ``barbuilder`` logger level from settings.

    BB_LOG_LEVEL overrides ``settings.log_level``. A stream handler is only
    attached when neither the host nor an earlier call installed one, so
    hosts that configure logging themselves keep their output.
    """
    configured = getattr(settings, "log_level", None)
    level = resolve_level(configured, default_level)
    level = resolve_level(os.getenv("BB_LOG_LEVEL"), level)

    pkg = logging.getLogger(PACKAGE_LOGGER)
    pkg.setLevel(level)
    if not pkg.handlers and not logging.getLogger().handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        pkg.addHandler(handler)
    return pkg
