"""Source file discovery for a project tree."""

from __future__ import annotations

import fnmatch
import logging
import os
from pathlib import Path
from typing import Iterable, Iterator, Optional, Set

from . import config
from .errors import ScanError

logger = logging.getLogger(__name__)


class SourceScanner:
    """Restartable, lazy listing of the source files below *root*.

    Every iteration walks the file system again, so the same scanner can be
    used to build an index and later to check whether it went stale.
    """

    def __init__(
        self,
        root: Path,
        extensions: Optional[Iterable[str]] = None,
        exclude: Optional[Iterable[str]] = None,
    ) -> None:
        self.root = Path(root)
        self.extensions: Set[str] = set(extensions or config.SUPPORTED_EXTENSIONS)
        self.exclude: Set[str] = set(exclude if exclude is not None else config.SKIP_DIRS)

    def __iter__(self) -> Iterator[Path]:
        return self.iter_files()

    def iter_files(self) -> Iterator[Path]:
        root = self._check_root()

        def _on_error(exc: OSError) -> None:
            logger.warning("Skipping unreadable directory %s: %s", exc.filename, exc.strerror)

        for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
            dirnames[:] = sorted(d for d in dirnames if not self.is_excluded(d))
            for filename in sorted(filenames):
                path = Path(dirpath) / filename
                if path.suffix not in self.extensions:
                    continue
                if not os.access(path, os.R_OK):
                    logger.warning("Skipping unreadable file %s", path)
                    continue
                yield path

    def relative_paths(self) -> Set[str]:
        return {self.relative(p) for p in self.iter_files()}

    def relative(self, path: Path) -> str:
        return Path(path).relative_to(self.root).as_posix()

    def is_excluded(self, dirname: str) -> bool:
        if dirname in self.exclude:
            return True
        return any(fnmatch.fnmatch(dirname, pattern) for pattern in self.exclude)

    def _check_root(self) -> Path:
        root = self.root
        if not root.exists():
            raise ScanError(f"Project root '{root}' does not exist.", root=str(root))
        if not root.is_dir():
            raise ScanError(f"Project root '{root}' is not a directory.", root=str(root))
        if not os.access(root, os.R_OK | os.X_OK):
            raise ScanError(f"Project root '{root}' is not readable.", root=str(root))
        return root
