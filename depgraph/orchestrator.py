"""Orchestrator coordinating scanning, indexing, persistence and queries."""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional, Tuple

from .config_manager import IndexConfig, load_project_config
from .errors import CorruptIndexError, UnknownFileError
from .graph import Index
from .impact import ImpactAnalyzer, validate_range
from .indexer import GraphIndexer, ProgressCallback
from .models import ConformanceEdge, ImpactResult, SymbolDeclaration
from .parser import top_level
from .storage import IndexStore

logger = logging.getLogger(__name__)


class IndexOrchestrator:
    """Owns the load-or-rebuild policy for one project root."""

    def __init__(
        self,
        root: Path,
        config: Optional[IndexConfig] = None,
        store: Optional[IndexStore] = None,
    ):
        self.root = Path(root).resolve()
        self.config = config or load_project_config(self.root)
        self.store = store or IndexStore()
        self.indexer = GraphIndexer(self.config)
        self.index_path = self.store.default_path(self.root)
        self._index: Optional[Index] = None

    def index(
        self,
        cancel_event: Optional[threading.Event] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> Tuple[Index, Path]:
        """Build a fresh index and persist it; a cancelled build saves nothing."""
        index = self.indexer.build_index(self.root, cancel_event=cancel_event, progress=progress)
        path = self.store.save(index, self.index_path, scan_rules=self._scan_rules())
        self._index = index
        return index, path

    def load_index(self) -> Index:
        """Return the stored index, rebuilding it when missing, stale or corrupt."""
        if self._index is not None:
            return self._index

        reason = None
        if not self.index_path.is_file():
            reason = "no index found"
        else:
            try:
                if self.store.is_stale(self.index_path, self.root):
                    reason = "files were added or removed"
                else:
                    self._index = self.store.load(self.index_path)
            except CorruptIndexError as exc:
                reason = exc.message

        if self._index is None:
            logger.info("Rebuilding index at %s: %s", self.index_path, reason)
            self._index, _ = self.index()
        return self._index

    def status(self) -> Dict[str, object]:
        """Describe the stored index without rebuilding it."""
        info: Dict[str, object] = {"root": str(self.root), "path": str(self.index_path), "exists": False}
        if not self.index_path.is_file():
            return info
        info["exists"] = True
        index = self.store.load(self.index_path)
        meta = self.store.read_meta(self.index_path)
        info["indexed_at"] = meta.get("indexed_at", "")
        info["schema_version"] = meta.get("schema_version", "")
        info["stale"] = self.store.is_stale(self.index_path, self.root)
        info.update(index.stats())
        return info

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def impact(self, file_path: str, line_start: int, line_end: int) -> ImpactResult:
        validate_range(line_start, line_end)
        index = self.load_index()
        return ImpactAnalyzer(index).analyze(self.relative_path(file_path), line_start, line_end)

    def symbols(self, file_path: str, top_level_only: bool = False) -> List[SymbolDeclaration]:
        index = self.load_index()
        rel_path = self.relative_path(file_path)
        if not index.has_file(rel_path):
            raise UnknownFileError(rel_path)
        declarations = sorted(index.declarations_in(rel_path), key=lambda d: (d.start_line, d.name))
        return top_level(declarations) if top_level_only else declarations

    def conformances(self, type_name: str) -> Dict[str, List[ConformanceEdge]]:
        index = self.load_index()
        return {
            "supertypes": index.supertypes_of(type_name),
            "conformers": index.conformers_of(type_name),
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def relative_path(self, file_path: str) -> str:
        """Map an absolute, cwd-relative or project-relative path onto the index key."""
        candidate = Path(file_path)
        if not candidate.is_absolute():
            from_cwd = (Path.cwd() / candidate).resolve()
            if from_cwd.is_file() and _is_within(from_cwd, self.root):
                candidate = from_cwd
        if candidate.is_absolute():
            resolved = candidate.resolve()
            if _is_within(resolved, self.root):
                return resolved.relative_to(self.root).as_posix()
            return resolved.as_posix()
        normalised = os.path.normpath(str(candidate)).replace(os.sep, "/")
        return str(PurePosixPath(normalised))

    def _scan_rules(self) -> Dict[str, List[str]]:
        return {
            "extensions": sorted(self.config.extensions),
            "exclude": sorted(self.config.exclude),
        }


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True
