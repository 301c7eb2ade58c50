"""Parallel index builder.

Per-file extraction is independent, so files are processed on a thread
pool; the results are immutable :class:`FileExtraction` values that are
merged into a single :class:`~depgraph.graph.Index` only after every file
has been handled.
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .config_manager import IndexConfig
from .errors import ExtractionWarning, IndexBuildCancelled
from .graph import Index
from .models import FileExtraction, SourceFile
from .parser import SwiftSymbolExtractor, SymbolExtractor
from .scanner import SourceScanner

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, int], None]
FileResult = Tuple[SourceFile, Optional[FileExtraction], List[ExtractionWarning]]

_QUEUE_POLL_SECONDS = 0.05


def compute_content_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()[:16]


@dataclass
class BuildStats:
    files: int = 0
    symbols: int = 0
    references: int = 0
    conformances: int = 0
    warnings: List[ExtractionWarning] = field(default_factory=list)

    def summary(self) -> Dict[str, int]:
        return {
            "files": self.files,
            "symbols": self.symbols,
            "references": self.references,
            "conformances": self.conformances,
            "warnings": len(self.warnings),
        }


class GraphIndexer:
    """Build a project :class:`Index` from a source tree."""

    def __init__(
        self,
        config: Optional[IndexConfig] = None,
        extractor: Optional[SymbolExtractor] = None,
    ) -> None:
        self.config = config or IndexConfig()
        self.extractor = extractor or SwiftSymbolExtractor()
        self.last_stats = BuildStats()

    def scanner_for(self, root: Path) -> SourceScanner:
        return SourceScanner(root, extensions=self.config.extensions, exclude=self.config.exclude)

    def build_index(
        self,
        root: Path,
        cancel_event: Optional[threading.Event] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> Index:
        """Scan *root* and return a freshly built index.

        Raises :class:`ScanError` if the root cannot be scanned and
        :class:`IndexBuildCancelled` if *cancel_event* is set before all
        files were processed. A cancelled build yields no index at all.
        """
        root = Path(root)
        scanner = self.scanner_for(root)
        paths = list(scanner)
        total = len(paths)
        logger.info("Indexing %d file(s) under %s", total, root)

        files: List[SourceFile] = []
        extractions: List[FileExtraction] = []
        warnings: List[ExtractionWarning] = []

        workers = max(1, min(self.config.workers, total or 1))
        # rel_path -> monotonic time the worker picked the file up
        started: Dict[str, float] = {}
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="depgraph-index")
        try:
            futures: List[Tuple[str, Future]] = []
            for path in paths:
                rel_path = scanner.relative(path)
                futures.append(
                    (rel_path, executor.submit(self._process_file, path, rel_path, cancel_event, started))
                )
            for done, (rel_path, future) in enumerate(futures, start=1):
                self._check_cancelled(cancel_event, rel_path)
                result = self._wait_for(future, rel_path, started, cancel_event)
                if result is None:
                    warnings.append(ExtractionWarning(
                        rel_path, "timed out after %.1fs; file skipped" % self.config.file_timeout,
                    ))
                    files.append(SourceFile(path=rel_path, content_hash="", line_count=0))
                else:
                    source_file, extraction, file_warnings = result
                    files.append(source_file)
                    if extraction is not None:
                        extractions.append(extraction)
                    warnings.extend(file_warnings)
                if progress is not None:
                    progress(rel_path, done, total)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        self._check_cancelled(cancel_event, None)

        for warning in warnings:
            logger.warning("%s", warning)

        index = Index.build(str(root), files, extractions)
        stats = index.stats()
        self.last_stats = BuildStats(
            files=stats["files"],
            symbols=stats["symbols"],
            references=stats["references"],
            conformances=stats["conformances"],
            warnings=warnings,
        )
        logger.info(
            "Indexed %d files: %d symbols, %d references, %d conformances (%d warnings)",
            stats["files"], stats["symbols"], stats["references"], stats["conformances"], len(warnings),
        )
        return index

    def _wait_for(
        self,
        future: Future,
        rel_path: str,
        started: Dict[str, float],
        cancel_event: Optional[threading.Event],
    ) -> Optional[FileResult]:
        """Wait for one file, timing it from when a worker picked it up.

        Returns ``None`` once the file has been running longer than the
        configured timeout. Files still queued behind a slow one keep waiting.
        """
        limit = self.config.file_timeout
        while True:
            began = started.get(rel_path)
            if began is None:
                timeout = min(limit, _QUEUE_POLL_SECONDS)
            else:
                timeout = max(0.0, began + limit - time.monotonic())
            try:
                return future.result(timeout=timeout)
            except FutureTimeoutError:
                began = started.get(rel_path)
                if began is not None and time.monotonic() - began >= limit:
                    return None
                self._check_cancelled(cancel_event, rel_path)

    # ------------------------------------------------------------------
    # Worker side
    # ------------------------------------------------------------------

    def _process_file(
        self,
        path: Path,
        rel_path: str,
        cancel_event: Optional[threading.Event],
        started: Dict[str, float],
    ) -> FileResult:
        started[rel_path] = time.monotonic()
        if cancel_event is not None and cancel_event.is_set():
            return SourceFile(rel_path, "", 0), None, []

        try:
            size = path.stat().st_size
            if size > self.config.max_file_bytes:
                return (
                    SourceFile(rel_path, "", 0),
                    None,
                    [ExtractionWarning(rel_path, f"file too large: {size:,} bytes (max {self.config.max_file_bytes:,})")],
                )
            data = path.read_bytes()
        except OSError as exc:
            return SourceFile(rel_path, "", 0), None, [ExtractionWarning(rel_path, f"unreadable: {exc}")]

        content_hash = compute_content_hash(data)
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            return (
                SourceFile(rel_path, content_hash, data.count(b"\n") + 1 if data else 0),
                None,
                [ExtractionWarning(rel_path, f"not valid UTF-8: {exc.reason}")],
            )

        source_file = SourceFile(rel_path, content_hash, len(text.splitlines()))
        extraction = self.extractor.extract(text, rel_path)
        return source_file, extraction, list(extraction.warnings)

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event], rel_path: Optional[str]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            where = f" before {rel_path}" if rel_path else ""
            raise IndexBuildCancelled(f"Index build cancelled{where}; nothing was saved.")
