"""Bounded publish/subscribe channel for scan and cleanup progress.

Workers publish from their own threads; the interactive loop drains its
subscription with :meth:`Subscription.poll`, which never blocks longer than
the timeout it is given. Progress events are dropped when a subscriber falls
behind. Completion events are always delivered.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Union

from tidyup.models.clean_result import CleanupReport
from tidyup.models.scan_result import ScanResult

log = logging.getLogger(__name__)

DEFAULT_MAILBOX_SIZE = 64


@dataclass(frozen=True, slots=True)
class ScanProgress:
    """Running totals for one category while it is being scanned."""

    category: str
    files_found: int
    total_size: int
    current_path: Path | None = None


@dataclass(frozen=True, slots=True)
class CleanProgress:
    """Per-file progress of a deletion batch."""

    current_path: Path
    processed: int
    total: int
    deleted_size: int


@dataclass(frozen=True, slots=True)
class ScanFinished:
    result: ScanResult
    error: Exception | None = None


@dataclass(frozen=True, slots=True)
class CleanupFinished:
    report: CleanupReport


class _Timeout:
    def __repr__(self) -> str:
        return "TIMEOUT"


TIMEOUT: Final = _Timeout()

ProgressEvent = Union[ScanProgress, CleanProgress, ScanFinished, CleanupFinished]


class Subscription:
    """One subscriber's mailbox."""

    def __init__(self, maxsize: int = DEFAULT_MAILBOX_SIZE) -> None:
        self._maxsize = maxsize
        self._events: deque[ProgressEvent] = deque()
        self._cond = threading.Condition()
        self._closed = False
        self._dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def dropped(self) -> int:
        """Number of progress events discarded because the mailbox was full."""
        return self._dropped

    def publish(self, event: ProgressEvent) -> bool:
        """Queue a progress event without blocking. Returns False if dropped."""
        with self._cond:
            if self._closed:
                return False
            if len(self._events) >= self._maxsize:
                self._dropped += 1
                return False
            self._events.append(event)
            self._cond.notify()
            return True

    def finish(self, event: ProgressEvent) -> None:
        """Deliver the final event regardless of capacity and close."""
        with self._cond:
            if self._closed:
                log.debug("Finish on closed subscription ignored: %r", event)
                return
            self._events.append(event)
            self._closed = True
            self._cond.notify_all()

    def poll(self, timeout: float = 0.0) -> ProgressEvent | _Timeout:
        """Return the next event, or ``TIMEOUT`` after at most ``timeout`` seconds."""
        with self._cond:
            if not self._events and timeout > 0:
                self._cond.wait_for(lambda: bool(self._events), timeout=timeout)
            if self._events:
                return self._events.popleft()
            return TIMEOUT

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()


class ProgressBus:
    """Fan-out of progress events to every live subscription."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: list[Subscription] = []

    def subscribe(self, maxsize: int = DEFAULT_MAILBOX_SIZE) -> Subscription:
        sub = Subscription(maxsize)
        with self._lock:
            self._subscribers.append(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscribers:
                self._subscribers.remove(sub)
        sub.close()

    def publish(self, event: ProgressEvent) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for sub in subscribers:
            sub.publish(event)

    def finish(self, event: ProgressEvent) -> None:
        """Deliver a completion event to every subscriber and detach them."""
        with self._lock:
            subscribers = list(self._subscribers)
            self._subscribers.clear()
        for sub in subscribers:
            sub.finish(event)

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)
