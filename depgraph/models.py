"""Core data models shared by extraction, indexing, and impact queries."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Tuple

from .errors import ExtractionWarning


class SymbolKind(str, Enum):
    """Closed set of declaration kinds recognised in Swift sources."""

    CLASS = "class"
    STRUCT = "struct"
    ENUM = "enum"
    PROTOCOL = "protocol"
    EXTENSION = "extension"
    FUNCTION = "function"
    VARIABLE = "variable"
    TYPEALIAS = "typealias"
    INITIALIZER = "initializer"
    ENUM_CASE = "enumCase"

    @property
    def is_type(self) -> bool:
        return self in TYPE_KINDS


TYPE_KINDS = frozenset({
    SymbolKind.CLASS,
    SymbolKind.STRUCT,
    SymbolKind.ENUM,
    SymbolKind.PROTOCOL,
    SymbolKind.EXTENSION,
})


@dataclass(frozen=True)
class SourceFile:
    path: str
    content_hash: str
    line_count: int


@dataclass(frozen=True)
class SymbolDeclaration:
    name: str
    kind: SymbolKind
    file_path: str
    start_line: int
    end_line: int
    depth: int = 0
    parent: str = ""

    @property
    def key(self) -> Tuple[str, str, int]:
        return (self.file_path, self.name, self.start_line)

    def overlaps(self, line_start: int, line_end: int) -> bool:
        return self.start_line <= line_end and line_start <= self.end_line

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "file": self.file_path,
            "startLine": self.start_line,
            "endLine": self.end_line,
            "depth": self.depth,
            "parent": self.parent or None,
        }


@dataclass(frozen=True)
class SymbolReference:
    name: str
    file_path: str
    line: int

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "line": self.line}


@dataclass(frozen=True)
class ConformanceEdge:
    subtype: str
    supertype: str
    file_path: str

    def to_dict(self) -> Dict[str, str]:
        return {"subtype": self.subtype, "supertype": self.supertype, "file": self.file_path}


@dataclass(frozen=True)
class FileExtraction:
    """Everything the extractor learned from one file."""

    file_path: str
    declarations: Tuple[SymbolDeclaration, ...] = ()
    references: Tuple[SymbolReference, ...] = ()
    conformances: Tuple[ConformanceEdge, ...] = ()
    warnings: Tuple[ExtractionWarning, ...] = ()


@dataclass(frozen=True)
class Usage:
    file: str
    line: int

    def to_dict(self) -> Dict[str, Any]:
        return {"file": self.file, "line": self.line}


@dataclass
class ImpactResult:
    """Answer to a single line-range impact query. Never persisted."""

    file: str
    line_start: int
    line_end: int
    defined: List[SymbolDeclaration] = field(default_factory=list)
    referenced: List[SymbolReference] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)
    impacted_files: List[str] = field(default_factory=list)
    usages: Dict[str, List[Usage]] = field(default_factory=dict)
    conformers: Dict[str, List[ConformanceEdge]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file,
            "lines": {"start": self.line_start, "end": self.line_end},
            "symbolsInRange": {
                "defined": [d.to_dict() for d in self.defined],
                "referenced": [r.to_dict() for r in self.referenced],
            },
            "dependencies": list(self.dependencies),
            "impactedFiles": list(self.impacted_files),
            "usages": {
                name: [u.to_dict() for u in entries]
                for name, entries in self.usages.items()
            },
            "conformers": {
                name: [e.to_dict() for e in edges]
                for name, edges in self.conformers.items()
            },
        }
