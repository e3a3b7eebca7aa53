from __future__ import annotations

import os
from pathlib import Path

from platformdirs import PlatformDirs

APP_NAME = "BarBuilder"

# Environment variable override (useful for tests and portable installs)
ENV_SAVE_DIR = "BB_SAVE_DIR"


def default_save_root() -> Path:
    """Return the platform-specific root directory for character saves.

    Linux: ~/.local/share/BarBuilder
    macOS: ~/Library/Application Support/BarBuilder
    Windows: %LOCALAPPDATA%\\BarBuilder
    """
    override = os.environ.get(ENV_SAVE_DIR)
    if override:
        return Path(override).expanduser()
    return Path(PlatformDirs(appname=APP_NAME, appauthor=False).user_data_dir)


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path
