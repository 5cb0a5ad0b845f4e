from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from platformdirs import user_data_dir

__all__ = [
    "APP_NAME",
    "APP_AUTHOR",
    "portable_mode_enabled",
    "executable_dir",
    "get_base_user_data_dir",
    "get_user_data_root",
    "get_save_dir",
    "ensure_exists",
]


APP_NAME = "nesstate"
APP_AUTHOR = "nesstate"

_logger = logging.getLogger(__name__)


def is_frozen() -> bool:
    """Return True if running under a frozen bundle (e.g., PyInstaller)."""
    return bool(getattr(sys, "frozen", False))


def executable_dir() -> Path:
    """Return the directory that contains the running executable.

    Frozen bundles use the directory of sys.executable; everything else is
    anchored at the current working directory.
    """
    if is_frozen():
        try:
            return Path(sys.executable).resolve().parent
        except Exception as exc:  # pragma: no cover - highly unlikely
            _logger.warning("Failed to resolve executable dir: %s", exc)
    return Path.cwd().resolve()


def portable_mode_enabled(flag_filename: str = "portable_mode.flag") -> bool:
    """Determine if snapshots should live next to the executable.

    Enabled if NESSTATE_PORTABLE is "1", "true", "yes" or "on"
    (case-insensitive), or if `flag_filename` exists in `executable_dir()`.
    """
    env = os.getenv("NESSTATE_PORTABLE", "").strip().lower()
    if env in {"1", "true", "yes", "on"}:
        return True
    return (executable_dir() / flag_filename).exists()


def get_base_user_data_dir() -> Path:
    """Return the OS-appropriate data directory (non-portable)."""
    return Path(user_data_dir(appname=APP_NAME, appauthor=APP_AUTHOR))


def get_user_data_root(create: bool = True) -> Path:
    """Return the root directory used for all user data.

    - Portable mode: <executable_dir>/userdata
    - Non-portable: platformdirs user data dir
    """
    if portable_mode_enabled():
        root = executable_dir() / "userdata"
    else:
        root = get_base_user_data_dir()
    if create:
        ensure_exists(root)
    return root


def ensure_exists(path: Path) -> None:
    """Create the directory if it doesn't exist. Log and raise on failure."""
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        _logger.error("Failed to create directory '%s': %s", path, exc)
        raise


def _subdir(name: str, create: bool = True) -> Path:
    sub = get_user_data_root(create=create) / name
    if create:
        ensure_exists(sub)
    return sub


def get_save_dir(create: bool = True) -> Path:
    """Return directory for snapshot databases."""
    return _subdir("saves", create=create)

