"""Session history persisted as a single JSON document."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from tidyup.utils import xdg_data_home

log = logging.getLogger(__name__)

HISTORY_VERSION = 1
MAX_SESSIONS = 1000  # oldest sessions are dropped beyond this

HISTORY_FILE = xdg_data_home() / "tidyup" / "history.json"


def _empty() -> dict[str, Any]:
    return {"version": HISTORY_VERSION, "sessions": []}


def load_history(path: Path | None = None) -> dict[str, Any]:
    """Read the history document.

    A missing, unreadable or malformed file yields an empty history; the
    broken file is left in place and overwritten by the next save.
    """
    path = path or HISTORY_FILE
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return _empty()
    except (json.JSONDecodeError, OSError) as e:
        log.warning("Could not read history from %s: %s", path, e)
        return _empty()

    if not isinstance(data, dict) or not isinstance(data.get("sessions"), list):
        log.warning("Ignoring malformed history file %s", path)
        return _empty()
    data.setdefault("version", HISTORY_VERSION)
    return data


def save_history(data: dict[str, Any], path: Path | None = None) -> None:
    """Replace the history document atomically."""
    path = path or HISTORY_FILE
    document = {**data, "version": HISTORY_VERSION, "sessions": data["sessions"][-MAX_SESSIONS:]}
    tmp = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_text(json.dumps(document, indent=2) + "\n", encoding="utf-8")
        os.replace(tmp, path)
    except OSError:
        log.exception("Failed to save history to %s", path)
