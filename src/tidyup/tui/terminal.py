"""Raw keyboard input and the full-screen display of the interactive wizard."""

from __future__ import annotations

import logging
import os
import select
import sys
import termios
import tty
from dataclasses import dataclass
from typing import Callable, TextIO, Union

from rich.console import Console, RenderableType
from rich.live import Live

log = logging.getLogger(__name__)

ESCAPE_WAIT = 0.03  # seconds to wait for the rest of an escape sequence

_PASTE_START = "[200~"
_PASTE_END = "\x1b[201~"
_BRACKETED_PASTE_ON = "\x1b[?2004h"
_BRACKETED_PASTE_OFF = "\x1b[?2004l"

_SEQUENCES = {
    "[A": "up",
    "[B": "down",
    "[C": "right",
    "[D": "left",
    "[H": "home",
    "[F": "end",
    "[Z": "shift+tab",
    "[5~": "pageup",
    "[6~": "pagedown",
    "[3~": "delete",
    "OA": "up",
    "OB": "down",
    "OC": "right",
    "OD": "left",
    "OH": "home",
    "OF": "end",
}

_CONTROL = {
    "\r": "enter",
    "\n": "enter",
    "\t": "tab",
    " ": "space",
    "\x7f": "backspace",
    "\x08": "backspace",
    "\x01": "ctrl+a",
    "\x03": "ctrl+c",
    "\x04": "ctrl+d",
    "\x15": "ctrl+u",
}


@dataclass(frozen=True, slots=True)
class Paste:
    """Text delivered in one piece by bracketed paste."""

    text: str


Key = Union[str, Paste]
ReadChar = Callable[[float | None], str | None]


def decode_key(read: ReadChar) -> Key | None:
    """Read one key press through ``read``.

    ``read(timeout)`` returns the next character, or None when nothing
    arrives in time. Named keys come back as strings like ``"up"`` or
    ``"ctrl+d"``; printable characters come back as themselves.
    """
    char = read(0)
    if char is None:
        return None
    if char != "\x1b":
        return _CONTROL.get(char, char)

    sequence = ""
    while True:
        nxt = read(ESCAPE_WAIT)
        if nxt is None:
            break
        sequence += nxt
        if sequence == _PASTE_START:
            return _read_paste(read)
        if sequence in _SEQUENCES:
            return _SEQUENCES[sequence]
        # CSI sequences end with a letter or '~'
        if len(sequence) > 1 and (nxt.isalpha() or nxt == "~"):
            log.debug("Unknown escape sequence %r", sequence)
            return None
        if sequence[0] not in "[O":
            # Alt+key; treat as a plain escape followed by nothing
            return "esc"
    return "esc" if not sequence else None


def _read_paste(read: ReadChar) -> Paste:
    text = ""
    while not text.endswith(_PASTE_END):
        char = read(ESCAPE_WAIT)
        if char is None:
            break
        text += char
    return Paste(text.removesuffix(_PASTE_END))


class Terminal:
    """Context manager giving the wizard the keyboard and the whole screen.

    The controlling terminal is put into cbreak mode: echo and line
    buffering are off, signal keys arrive as ordinary input (ctrl+c is a
    key, not SIGINT), output processing stays on. Frames are shown by a
    rich ``Live`` display on the alternate screen, and bracketed paste is
    enabled while active.
    """

    def __init__(self, stdin: TextIO | None = None, console: Console | None = None) -> None:
        self.stdin = stdin or sys.stdin
        self.console = console or Console(highlight=False)
        self._fd = self.stdin.fileno()
        self._saved: list | None = None
        self._live: Live | None = None

    def __enter__(self) -> Terminal:
        self._saved = termios.tcgetattr(self._fd)
        tty.setcbreak(self._fd)
        mode = termios.tcgetattr(self._fd)
        mode[tty.LFLAG] &= ~termios.ISIG
        termios.tcsetattr(self._fd, termios.TCSANOW, mode)
        self._live = Live(console=self.console, screen=True, auto_refresh=False, redirect_stderr=False)
        self._live.start()
        self._send(_BRACKETED_PASTE_ON)
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._send(_BRACKETED_PASTE_OFF)
        if self._live is not None:
            self._live.stop()
            self._live = None
        if self._saved is not None:
            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved)
            self._saved = None

    def _send(self, sequence: str) -> None:
        # Not covered by rich.control
        if self.console.is_terminal:
            self.console.file.write(sequence)
            self.console.file.flush()

    def _read_char(self, timeout: float | None) -> str | None:
        ready, _, _ = select.select([self._fd], [], [], timeout)
        if not ready:
            return None
        data = os.read(self._fd, 1)
        if not data:
            return None
        # Pull in UTF-8 continuation bytes
        lead = data[0]
        extra = 3 if lead >= 0xF0 else 2 if lead >= 0xE0 else 1 if lead >= 0xC0 else 0
        if extra:
            data += os.read(self._fd, extra)
        return data.decode("utf-8", errors="replace")

    def read_key(self, timeout: float) -> Key | None:
        """Wait up to ``timeout`` seconds for a key press."""
        ready, _, _ = select.select([self._fd], [], [], timeout)
        if not ready:
            return None
        return decode_key(self._read_char)

    def size(self) -> tuple[int, int]:
        """Terminal size as (columns, lines)."""
        width, height = self.console.size
        return width, height

    def draw(self, screen: RenderableType) -> None:
        """Replace the displayed frame."""
        if self._live is None:
            log.debug("Draw outside of an active terminal ignored")
            return
        self._live.update(screen, refresh=True)
