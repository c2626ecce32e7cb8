"""Scanner discovery and loading."""

from __future__ import annotations

import importlib
import importlib.util
import inspect
import logging
import pkgutil
from pathlib import Path
from types import ModuleType

from tidyup.core.registry import ScannerRegistry
from tidyup.models.scanner import CategoryScanner
from tidyup.settings import Config
from tidyup.utils import xdg_data_home

log = logging.getLogger(__name__)

# Standard scanner search paths
_SYSTEM_SCANNER_DIR = Path("/usr/share/tidyup/scanners")
_USER_SCANNER_DIR = xdg_data_home() / "tidyup" / "scanners"


def _find_scanners_in_module(module: ModuleType) -> list[type[CategoryScanner]]:
    """Find all concrete CategoryScanner subclasses defined in a module."""
    scanners: list[type[CategoryScanner]] = []
    for _, obj in inspect.getmembers(module, inspect.isclass):
        if issubclass(obj, CategoryScanner) and not inspect.isabstract(obj) and obj.__module__ == module.__name__:
            scanners.append(obj)
    return scanners


def _load_builtin_scanners() -> list[type[CategoryScanner]]:
    """Load scanners from the tidyup.scanners package."""
    import tidyup.scanners as scanners_pkg

    found: list[type[CategoryScanner]] = []
    for _importer, modname, _ispkg in pkgutil.iter_modules(scanners_pkg.__path__):
        try:
            module = importlib.import_module(f"tidyup.scanners.{modname}")
            found.extend(_find_scanners_in_module(module))
        except Exception:
            log.exception("Failed to load built-in scanner module: %s", modname)
    return found


def _entry_module(path: Path) -> Path | None:
    """The file to import for one directory entry, if it looks like a scanner."""
    if path.is_dir():
        for name in ("plugin.py", "__init__.py"):
            if (path / name).is_file():
                return path / name
        return None
    if path.suffix == ".py" and path.name != "__init__.py":
        return path
    return None


def _load_scanners_from_directory(directory: Path) -> list[type[CategoryScanner]]:
    """Import external scanners from ``directory``.

    Each entry is either a ``*.py`` module or a package directory with a
    ``plugin.py`` (preferred) or ``__init__.py``. A module that fails to
    import is logged and skipped.
    """
    if not directory.is_dir():
        return []

    found: list[type[CategoryScanner]] = []
    for entry in sorted(directory.iterdir()):
        module_file = _entry_module(entry)
        if module_file is None:
            continue
        spec = importlib.util.spec_from_file_location(f"tidyup_ext_scanner_{entry.stem}", module_file)
        if spec is None or spec.loader is None:
            log.warning("Cannot import scanner from %s", module_file)
            continue
        module = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(module)
        except Exception:
            log.exception("Failed to load scanner from: %s", module_file)
            continue
        found.extend(_find_scanners_in_module(module))
    return found


def scanner_directories(config: Config | None = None) -> list[Path]:
    """External scanner directories, system-wide first, then the user's, then configured ones."""
    directories = [_SYSTEM_SCANNER_DIR, _USER_SCANNER_DIR]
    if config is not None:
        directories.extend(config.scanner_paths)
    return directories


def load_scanners(registry: ScannerRegistry, config: Config | None = None) -> None:
    """Discover and register the built-in scanners and any external ones."""
    classes = _load_builtin_scanners()
    for directory in scanner_directories(config):
        classes.extend(_load_scanners_from_directory(directory))

    for cls in classes:
        try:
            registry.register(cls())
        except Exception:
            log.exception("Failed to instantiate scanner: %s", cls.__name__)

    log.info("Loaded %d scanners", len(registry))
