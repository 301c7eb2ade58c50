"""Line-range impact analysis against a built index."""

from __future__ import annotations

import re
from typing import Dict, List, Set, Tuple

from .errors import InvalidRangeError, UnknownFileError
from .graph import Index
from .models import ConformanceEdge, ImpactResult, SymbolDeclaration, SymbolKind, SymbolReference, Usage

_RANGE_RE = re.compile(r"^\s*(\d+)\s*:\s*(\d+)\s*$")


def parse_line_range(value: str) -> Tuple[int, int]:
    """Parse a ``START:END`` argument into a validated 1-based inclusive range."""
    match = _RANGE_RE.match(value or "")
    if not match:
        raise InvalidRangeError(value, "expected START:END with positive line numbers, e.g. 10:15")
    start, end = int(match.group(1)), int(match.group(2))
    validate_range(start, end, value)
    return start, end


def validate_range(line_start: int, line_end: int, original: str = "") -> None:
    shown = original or f"{line_start}:{line_end}"
    if line_start < 1 or line_end < 1:
        raise InvalidRangeError(shown, "line numbers start at 1")
    if line_start > line_end:
        raise InvalidRangeError(shown, f"start line {line_start} is after end line {line_end}")


def _definition_order(decl: SymbolDeclaration) -> Tuple[int, str, str, int]:
    return (decl.start_line, decl.kind.value, decl.name, decl.end_line)


class ImpactAnalyzer:
    """Answers "what depends on these lines" for one index.

    Holds no state besides the index; every query is a pure function of the
    index and its arguments.
    """

    def __init__(self, index: Index) -> None:
        self.index = index

    def analyze(self, file_path: str, line_start: int, line_end: int) -> ImpactResult:
        validate_range(line_start, line_end)
        index = self.index
        if not index.has_file(file_path):
            raise UnknownFileError(file_path)

        defined = sorted(
            (d for d in index.declarations_in(file_path) if d.overlaps(line_start, line_end)),
            key=_definition_order,
        )
        referenced = self._referenced(file_path, line_start, line_end)

        dependencies: Set[str] = set()
        for ref in referenced:
            dependencies.update(index.files_declaring(ref.name))
        dependencies.discard(file_path)

        defined_names = list(dict.fromkeys(d.name for d in defined))

        impacted: Set[str] = set()
        usages: Dict[str, List[Usage]] = {}
        for name in defined_names:
            refs = index.references_to(name)
            # the extended type in `extension Name` is not a usage of the extension itself
            headers = {
                d.start_line for d in index.declarations_in(file_path)
                if d.kind is SymbolKind.EXTENSION and d.name == name
            }
            usages[name] = sorted(
                {
                    Usage(file=r.file_path, line=r.line) for r in refs
                    if not (r.file_path == file_path and r.line in headers)
                },
                key=lambda u: (u.file, u.line),
            )
            impacted.update(r.file_path for r in refs if r.file_path != file_path)

        conformers: Dict[str, List[ConformanceEdge]] = {}
        for decl in defined:
            if decl.kind.is_type and decl.name not in conformers:
                edges = index.conformers_of(decl.name)
                if edges:
                    conformers[decl.name] = edges

        return ImpactResult(
            file=file_path,
            line_start=line_start,
            line_end=line_end,
            defined=defined,
            referenced=referenced,
            dependencies=sorted(dependencies),
            impacted_files=sorted(impacted),
            usages=usages,
            conformers=conformers,
        )

    def _referenced(self, file_path: str, line_start: int, line_end: int) -> List[SymbolReference]:
        first_seen: Dict[str, SymbolReference] = {}
        for ref in self.index.references_in(file_path):
            if line_start <= ref.line <= line_end and ref.name not in first_seen:
                first_seen[ref.name] = ref
        return list(first_seen.values())


def analyze_impact(index: Index, file_path: str, line_start: int, line_end: int) -> ImpactResult:
    return ImpactAnalyzer(index).analyze(file_path, line_start, line_end)
