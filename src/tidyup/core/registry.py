"""Central scanner registry."""

from __future__ import annotations

import logging
from typing import Iterator

from tidyup.models.scanner import CategoryScanner

log = logging.getLogger(__name__)


class ScannerRegistry:
    """Stores and retrieves registered scanners."""

    def __init__(self) -> None:
        self._scanners: dict[str, CategoryScanner] = {}

    def register(self, scanner: CategoryScanner) -> None:
        """Register a scanner instance."""
        if scanner.id in self._scanners:
            log.warning("Scanner '%s' already registered, skipping duplicate", scanner.id)
            return
        self._scanners[scanner.id] = scanner
        log.debug("Registered scanner: %s (%s)", scanner.id, scanner.category)

    def get(self, scanner_id: str) -> CategoryScanner | None:
        """Get a scanner by its ID."""
        return self._scanners.get(scanner_id)

    def get_all(self) -> list[CategoryScanner]:
        """Get all registered scanners in display order."""
        return sorted(self._scanners.values(), key=lambda s: (s.sort_order, s.id))

    def get_by_category(self, category: str) -> list[CategoryScanner]:
        """Get all scanners producing a given category."""
        return [s for s in self.get_all() if s.category == category]

    def get_available(self) -> list[CategoryScanner]:
        """Get all scanners that are available on this system."""
        available = []
        for scanner in self.get_all():
            try:
                if scanner.is_available():
                    available.append(scanner)
            except Exception:
                log.exception("Error checking availability for scanner '%s'", scanner.id)
        return available

    def categories(self) -> list[str]:
        """Distinct categories of the registered scanners, in display order."""
        return list(dict.fromkeys(s.category for s in self.get_all()))

    def __len__(self) -> int:
        return len(self._scanners)

    def __iter__(self) -> Iterator[CategoryScanner]:
        return iter(self.get_all())

    def __contains__(self, scanner_id: str) -> bool:
        return scanner_id in self._scanners
