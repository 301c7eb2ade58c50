"""Persistence layer for depgraph indexes.

An index is stored as a single SQLite database next to the project
(``<root>/.depgraph/index.db``). Saving writes a fresh database beside the
target and swaps it in with :func:`os.replace`, so readers only ever see a
complete index.
"""

from __future__ import annotations

import json
import logging
import os
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

from . import config
from .errors import CorruptIndexError
from .graph import Index
from .models import ConformanceEdge, SourceFile, SymbolDeclaration, SymbolKind, SymbolReference
from .scanner import SourceScanner

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE meta (
        key   TEXT PRIMARY KEY,
        value TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE files (
        path         TEXT PRIMARY KEY,
        content_hash TEXT NOT NULL,
        line_count   INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE declarations (
        seq        INTEGER PRIMARY KEY,
        name       TEXT NOT NULL,
        kind       TEXT NOT NULL,
        file_path  TEXT NOT NULL,
        start_line INTEGER NOT NULL,
        end_line   INTEGER NOT NULL,
        depth      INTEGER NOT NULL,
        parent     TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE refs (
        seq       INTEGER PRIMARY KEY,
        name      TEXT NOT NULL,
        file_path TEXT NOT NULL,
        line      INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE conformances (
        subtype   TEXT NOT NULL,
        supertype TEXT NOT NULL,
        file_path TEXT NOT NULL
    )
    """,
    "CREATE INDEX idx_declarations_file ON declarations(file_path)",
    "CREATE INDEX idx_refs_file ON refs(file_path)",
)


class IndexStore:
    """Save, load and staleness-check serialized indexes."""

    @staticmethod
    def default_path(root: Path) -> Path:
        return Path(root) / config.INDEX_DIRNAME / config.INDEX_FILENAME

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def save(
        self,
        index: Index,
        path: Path,
        scan_rules: Optional[Dict[str, Any]] = None,
    ) -> Path:
        """Write *index* to *path*, replacing any previous index atomically."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".tmp")
        if tmp_path.exists():
            tmp_path.unlink()

        conn = sqlite3.connect(str(tmp_path))
        try:
            cur = conn.cursor()
            for statement in _SCHEMA:
                cur.execute(statement)

            meta = {
                "schema_version": str(config.SCHEMA_VERSION),
                "root": index.root,
                "indexed_at": datetime.now().isoformat(),
                "scan_rules": json.dumps(scan_rules or {}, sort_keys=True),
            }
            cur.executemany("INSERT INTO meta (key, value) VALUES (?, ?)", sorted(meta.items()))
            cur.executemany(
                "INSERT INTO files (path, content_hash, line_count) VALUES (?, ?, ?)",
                [(f.path, f.content_hash, f.line_count) for f in index.files.values()],
            )
            cur.executemany(
                """
                INSERT INTO declarations (
                    name, kind, file_path, start_line, end_line, depth, parent
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (d.name, d.kind.value, d.file_path, d.start_line, d.end_line, d.depth, d.parent)
                    for path_ in sorted(index.file_declarations)
                    for d in index.file_declarations[path_]
                ],
            )
            cur.executemany(
                "INSERT INTO refs (name, file_path, line) VALUES (?, ?, ?)",
                [
                    (r.name, r.file_path, r.line)
                    for path_ in sorted(index.references)
                    for r in index.references[path_]
                ],
            )
            cur.executemany(
                "INSERT INTO conformances (subtype, supertype, file_path) VALUES (?, ?, ?)",
                [
                    (e.subtype, e.supertype, e.file_path)
                    for e in sorted(index.conformances, key=lambda e: (e.file_path, e.subtype, e.supertype))
                ],
            )
            conn.commit()
        finally:
            conn.close()

        os.replace(tmp_path, path)
        logger.info("Saved index with %d file(s) to %s", len(index.files), path)
        return path

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def load(self, path: Path) -> Index:
        """Read an index back; raises :class:`CorruptIndexError` on any problem."""
        path = Path(path)
        if not path.is_file():
            raise CorruptIndexError(f"No index found at '{path}'.", path=str(path))

        try:
            conn = self._connect(path)
        except sqlite3.Error as exc:
            raise CorruptIndexError(f"Cannot open index '{path}': {exc}", path=str(path)) from exc

        try:
            meta = self._read_meta(conn, path)
            files = {
                row["path"]: SourceFile(row["path"], row["content_hash"], row["line_count"])
                for row in conn.execute("SELECT * FROM files ORDER BY path")
            }

            declarations: Dict[str, List[SymbolDeclaration]] = {}
            file_declarations: Dict[str, List[SymbolDeclaration]] = {p: [] for p in files}
            for row in conn.execute("SELECT * FROM declarations ORDER BY seq"):
                decl = SymbolDeclaration(
                    name=row["name"],
                    kind=SymbolKind(row["kind"]),
                    file_path=row["file_path"],
                    start_line=row["start_line"],
                    end_line=row["end_line"],
                    depth=row["depth"],
                    parent=row["parent"],
                )
                declarations.setdefault(decl.name, []).append(decl)
                file_declarations.setdefault(decl.file_path, []).append(decl)

            references: Dict[str, List[SymbolReference]] = {p: [] for p in files}
            for row in conn.execute("SELECT * FROM refs ORDER BY seq"):
                ref = SymbolReference(row["name"], row["file_path"], row["line"])
                references.setdefault(ref.file_path, []).append(ref)

            conformances = frozenset(
                ConformanceEdge(row["subtype"], row["supertype"], row["file_path"])
                for row in conn.execute("SELECT * FROM conformances")
            )
        except sqlite3.Error as exc:
            raise CorruptIndexError(f"Index '{path}' is unreadable: {exc}", path=str(path)) from exc
        except (ValueError, KeyError, IndexError) as exc:
            raise CorruptIndexError(f"Index '{path}' contains malformed data: {exc}", path=str(path)) from exc
        finally:
            conn.close()

        return Index.from_parts(
            root=meta["root"],
            files=files,
            declarations={name: tuple(d) for name, d in declarations.items()},
            references={p: tuple(r) for p, r in references.items()},
            file_declarations={p: tuple(d) for p, d in file_declarations.items()},
            conformances=conformances,
        )

    def read_meta(self, path: Path) -> Dict[str, str]:
        conn = self._connect(Path(path))
        try:
            return self._read_meta(conn, Path(path))
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Staleness
    # ------------------------------------------------------------------

    def stored_files(self, path: Path) -> Set[str]:
        conn = self._connect(Path(path))
        try:
            self._read_meta(conn, Path(path))
            return {row["path"] for row in conn.execute("SELECT path FROM files")}
        except sqlite3.Error as exc:
            raise CorruptIndexError(f"Index '{path}' is unreadable: {exc}", path=str(path)) from exc
        finally:
            conn.close()

    def is_stale(self, path: Path, root: Path) -> bool:
        """True when files were added or removed since the index was built.

        Content-only edits do not count: the stored file set is compared with
        the current listing made with the same scan rules as the build.
        """
        path = Path(path)
        if not path.is_file():
            raise CorruptIndexError(f"No index found at '{path}'.", path=str(path))
        stored = self.stored_files(path)
        extensions, exclude = self._scan_rules(path)
        current = SourceScanner(root, extensions=extensions, exclude=exclude).relative_paths()
        added = current - stored
        removed = stored - current
        if added or removed:
            logger.info("Index is stale: %d file(s) added, %d removed", len(added), len(removed))
            return True
        return False

    def _scan_rules(self, path: Path) -> Tuple[Optional[List[str]], Optional[List[str]]]:
        meta = self.read_meta(path)
        try:
            rules = json.loads(meta.get("scan_rules") or "{}")
        except json.JSONDecodeError:
            rules = {}
        return rules.get("extensions"), rules.get("exclude")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _connect(path: Path) -> sqlite3.Connection:
        conn = sqlite3.connect(f"file:{path}?mode=ro", uri=True)
        conn.row_factory = sqlite3.Row
        return conn

    @staticmethod
    def _read_meta(conn: sqlite3.Connection, path: Path) -> Dict[str, str]:
        try:
            meta = {row["key"]: row["value"] for row in conn.execute("SELECT key, value FROM meta")}
        except sqlite3.Error as exc:
            raise CorruptIndexError(f"Index '{path}' is unreadable: {exc}", path=str(path)) from exc

        version = meta.get("schema_version")
        if version != str(config.SCHEMA_VERSION):
            raise CorruptIndexError(
                f"Index '{path}' has schema version {version!r}; expected {config.SCHEMA_VERSION}.",
                path=str(path),
                schema_version=version,
            )
        if "root" not in meta:
            raise CorruptIndexError(f"Index '{path}' has no root recorded.", path=str(path))
        return meta
