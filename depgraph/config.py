"""Default locations and scan rules for depgraph indexes."""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)

INDEX_DIRNAME = os.environ.get("DEPGRAPH_INDEX_DIR", ".depgraph")
INDEX_FILENAME = "index.db"
PROJECT_CONFIG_FILE = ".depgraph.toml"

# Bumped whenever the on-disk layout changes; older indexes are rebuilt.
SCHEMA_VERSION = 1

SUPPORTED_EXTENSIONS = {".swift"}

SKIP_DIRS = {
    ".git", ".hg", ".svn", ".build", "build", "DerivedData",
    "Pods", "Carthage", ".swiftpm", "node_modules", INDEX_DIRNAME,
}

MAX_FILE_BYTES = 1_048_576
FILE_TIMEOUT_SECONDS = 30.0


def default_workers() -> int:
    """Worker count from ``DEPGRAPH_WORKERS``, else one per CPU."""
    raw = os.environ.get("DEPGRAPH_WORKERS", "").strip()
    if raw:
        try:
            workers = int(raw)
        except ValueError:
            logger.warning("Ignoring DEPGRAPH_WORKERS=%r: not an integer", raw)
        else:
            if workers > 0:
                return workers
            logger.warning("Ignoring DEPGRAPH_WORKERS=%r: must be positive", raw)
    return os.cpu_count() or 1


DEFAULT_WORKERS = default_workers()
