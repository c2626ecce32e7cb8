"""Shared utility functions."""

from __future__ import annotations

import hashlib
import logging
import os
import re
import time
from datetime import datetime, timezone
from pathlib import Path

log = logging.getLogger(__name__)

_CHUNK_SIZE = 65_536  # 64 KB

_SIZE_UNITS = ("KB", "MB", "GB", "TB")

_RELATIVE_UNITS = (
    ("year", 365 * 86400),
    ("month", 30 * 86400),
    ("day", 86400),
    ("hour", 3600),
    ("minute", 60),
)


def _xdg(variable: str, *fallback: str) -> Path:
    value = os.environ.get(variable)
    # XDG base directory rules say relative values are ignored
    if value and os.path.isabs(value):
        return Path(value)
    return Path.home().joinpath(*fallback)


def xdg_cache_home() -> Path:
    return _xdg("XDG_CACHE_HOME", ".cache")


def xdg_config_home() -> Path:
    return _xdg("XDG_CONFIG_HOME", ".config")


def xdg_data_home() -> Path:
    return _xdg("XDG_DATA_HOME", ".local", "share")


def xdg_state_home() -> Path:
    """Where logs and other state live, ~/.local/state by default."""
    return _xdg("XDG_STATE_HOME", ".local", "state")


def xdg_user_dir(key: str, fallback: str) -> Path:
    """Resolve an XDG user directory such as ``DOWNLOAD`` or ``DOCUMENTS``.

    Reads ``XDG_<KEY>_DIR`` from ``~/.config/user-dirs.dirs`` and falls
    back to ``~/<fallback>``. The directory is not required to exist.
    """
    dirs_file = xdg_config_home() / "user-dirs.dirs"
    if dirs_file.is_file():
        try:
            text = dirs_file.read_text()
            match = re.search(rf'^XDG_{key}_DIR="(.+)"', text, re.MULTILINE)
            if match:
                return Path(match.group(1).replace("$HOME", str(Path.home())))
        except OSError:
            log.debug("Cannot read %s", dirs_file)
    return Path.home() / fallback


def sha256(path: Path) -> str:
    """Compute SHA-256 of a file using chunked reads."""
    h = hashlib.sha256()
    with path.open("rb") as f:
        while chunk := f.read(_CHUNK_SIZE):
            h.update(chunk)
    return h.hexdigest()


def bytes_to_human(size_bytes: int) -> str:
    """Format a byte count with binary units, e.g. '1.5 KB'."""
    if size_bytes < 0:
        return "-" + bytes_to_human(-size_bytes)
    if size_bytes < 1024:
        return f"{size_bytes} B"
    value = size_bytes / 1024
    for unit in _SIZE_UNITS:
        if value < 1024 or unit == _SIZE_UNITS[-1]:
            break
        value /= 1024
    return f"{value:.1f} {unit}"


def format_age(mtime: float, now: float | None = None) -> str:
    """Format a modification time as a compact age ('3d', '5h', '2mo')."""
    seconds = int((now if now is not None else time.time()) - mtime)
    if seconds < 60:
        return "now"
    if seconds < 3600:
        return f"{seconds // 60}m"
    if seconds < 86400:
        return f"{seconds // 3600}h"
    days = seconds // 86400
    if days < 30:
        return f"{days}d"
    if days < 365:
        return f"{days // 30}mo"
    return f"{days // 365}y"


def format_relative_time(iso_timestamp: str, now: datetime | None = None) -> str:
    """Describe an ISO timestamp relative to now, e.g. '3 days ago'."""
    then = datetime.fromisoformat(iso_timestamp)
    seconds = int(((now or datetime.now(timezone.utc)) - then).total_seconds())
    for unit, length in _RELATIVE_UNITS:
        if seconds >= length:
            amount = seconds // length
            return f"{amount} {unit}{'' if amount == 1 else 's'} ago"
    return "just now"


def format_elapsed(seconds: float) -> str:
    """Format an elapsed time as a human-readable string."""
    if seconds < 1:
        return f"{seconds * 1000:.0f} ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds) // 60
    secs = seconds - minutes * 60
    return f"{minutes}m {secs:.0f}s"


def truncate_path(path: str, width: int) -> str:
    """Shorten a path to ``width`` characters, keeping its tail visible."""
    if width <= 3:
        return path[:max(width, 0)]
    if len(path) <= width:
        return path
    return "..." + path[-(width - 3):]
