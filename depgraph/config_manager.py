"""Per-project configuration for depgraph using TOML files.

A project may carry a ``.depgraph.toml`` at its root::

    [index]
    extensions = [".swift"]
    exclude = ["Generated", "*.xcodeproj"]
    workers = 4
    max_file_bytes = 524288
    file_timeout = 10.0

Missing keys fall back to the defaults in :mod:`depgraph.config`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional

import toml

from . import config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexConfig:
    """Scan and indexing rules for one project."""

    extensions: FrozenSet[str] = field(default_factory=lambda: frozenset(config.SUPPORTED_EXTENSIONS))
    exclude: FrozenSet[str] = field(default_factory=lambda: frozenset(config.SKIP_DIRS))
    workers: int = config.DEFAULT_WORKERS
    max_file_bytes: int = config.MAX_FILE_BYTES
    file_timeout: float = config.FILE_TIMEOUT_SECONDS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "extensions": sorted(self.extensions),
            "exclude": sorted(self.exclude),
            "workers": self.workers,
            "max_file_bytes": self.max_file_bytes,
            "file_timeout": self.file_timeout,
        }


def _normalise_extension(ext: str) -> str:
    ext = ext.strip()
    return ext if ext.startswith(".") else f".{ext}"


def config_from_dict(payload: Dict[str, Any]) -> IndexConfig:
    """Build an :class:`IndexConfig` from the ``[index]`` table of a config file.

    ``exclude`` entries are added to the default exclusions rather than
    replacing them, so version-control and build directories stay skipped.
    """
    defaults = IndexConfig()
    extensions = payload.get("extensions")
    exclude = payload.get("exclude") or []
    for key, value in (("extensions", extensions), ("exclude", exclude)):
        if value is not None and not isinstance(value, list):
            raise TypeError(f"'{key}' must be a list of strings, got {type(value).__name__}")
    return IndexConfig(
        extensions=frozenset(_normalise_extension(e) for e in extensions) if extensions else defaults.extensions,
        exclude=defaults.exclude | frozenset(str(e) for e in exclude),
        workers=max(1, int(payload.get("workers", defaults.workers))),
        max_file_bytes=int(payload.get("max_file_bytes", defaults.max_file_bytes)),
        file_timeout=float(payload.get("file_timeout", defaults.file_timeout)),
    )


def load_project_config(project_root: Path, config_file: Optional[Path] = None) -> IndexConfig:
    """Load the project configuration, falling back to defaults.

    A malformed file is reported and ignored; it never prevents indexing.
    """
    path = config_file or (Path(project_root) / config.PROJECT_CONFIG_FILE)
    if not path.is_file():
        return IndexConfig()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        return IndexConfig()

    try:
        return config_from_dict(data.get("index", {}))
    except (TypeError, ValueError) as exc:
        logger.warning("Ignoring invalid [index] settings in %s: %s", path, exc)
        return IndexConfig()
