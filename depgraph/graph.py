"""Project-wide symbol graph built from per-file extraction results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Set, Tuple

from .models import (
    ConformanceEdge,
    FileExtraction,
    SourceFile,
    SymbolDeclaration,
    SymbolReference,
)


@dataclass(frozen=True)
class Index:
    """Immutable aggregate of every file, declaration, reference and edge.

    Built once per index run and replaced wholesale on re-index; queries
    never mutate it, so one instance can serve concurrent readers.
    Reference names that match no declaration are kept but never produce
    dependency edges.
    """

    root: str
    files: Dict[str, SourceFile]
    declarations: Dict[str, Tuple[SymbolDeclaration, ...]]
    references: Dict[str, Tuple[SymbolReference, ...]]
    file_declarations: Dict[str, Tuple[SymbolDeclaration, ...]]
    conformances: FrozenSet[ConformanceEdge]
    references_by_name: Dict[str, Tuple[SymbolReference, ...]] = field(default_factory=dict, compare=False)

    @classmethod
    def build(
        cls,
        root: str,
        files: Iterable[SourceFile],
        extractions: Iterable[FileExtraction],
    ) -> "Index":
        """Merge per-file results into an index.

        Extractions are merged in path order so the resulting maps do not
        depend on the order workers finished in.
        """
        file_map = {f.path: f for f in sorted(files, key=lambda f: f.path)}
        declarations: Dict[str, List[SymbolDeclaration]] = {}
        file_declarations: Dict[str, Tuple[SymbolDeclaration, ...]] = {}
        references: Dict[str, Tuple[SymbolReference, ...]] = {}
        conformances: Set[ConformanceEdge] = set()

        for extraction in sorted(extractions, key=lambda e: e.file_path):
            path = extraction.file_path
            seen: Set[Tuple[str, str, int]] = set()
            decls: List[SymbolDeclaration] = []
            for decl in extraction.declarations:
                if decl.key in seen:
                    continue
                seen.add(decl.key)
                decls.append(decl)
                declarations.setdefault(decl.name, []).append(decl)
            file_declarations[path] = tuple(decls)
            references[path] = _unique_references(extraction.references)
            conformances.update(extraction.conformances)

        for path in file_map:
            file_declarations.setdefault(path, ())
            references.setdefault(path, ())

        return cls.from_parts(
            root=root,
            files=file_map,
            declarations={name: tuple(decls) for name, decls in declarations.items()},
            references=references,
            file_declarations=file_declarations,
            conformances=frozenset(conformances),
        )

    @classmethod
    def from_parts(
        cls,
        root: str,
        files: Dict[str, SourceFile],
        declarations: Dict[str, Tuple[SymbolDeclaration, ...]],
        references: Dict[str, Tuple[SymbolReference, ...]],
        file_declarations: Dict[str, Tuple[SymbolDeclaration, ...]],
        conformances: FrozenSet[ConformanceEdge],
    ) -> "Index":
        by_name: Dict[str, List[SymbolReference]] = {}
        for path in sorted(references):
            for ref in references[path]:
                by_name.setdefault(ref.name, []).append(ref)
        return cls(
            root=root,
            files=files,
            declarations=declarations,
            references=references,
            file_declarations=file_declarations,
            conformances=conformances,
            references_by_name={
                name: tuple(sorted(refs, key=lambda r: (r.file_path, r.line)))
                for name, refs in by_name.items()
            },
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def has_file(self, path: str) -> bool:
        return path in self.files

    def declarations_in(self, path: str) -> Tuple[SymbolDeclaration, ...]:
        return self.file_declarations.get(path, ())

    def references_in(self, path: str) -> Tuple[SymbolReference, ...]:
        return self.references.get(path, ())

    def declarations_named(self, name: str) -> Tuple[SymbolDeclaration, ...]:
        return self.declarations.get(name, ())

    def references_to(self, name: str) -> Tuple[SymbolReference, ...]:
        return self.references_by_name.get(name, ())

    def files_declaring(self, name: str) -> Set[str]:
        return {d.file_path for d in self.declarations_named(name)}

    def is_resolved(self, name: str) -> bool:
        return name in self.declarations

    # ------------------------------------------------------------------
    # Conformance walks (transitive closure is computed here, at query time)
    # ------------------------------------------------------------------

    def supertypes_of(self, type_name: str, transitive: bool = True) -> List[ConformanceEdge]:
        return self._walk(type_name, forward=True, transitive=transitive)

    def conformers_of(self, type_name: str, transitive: bool = True) -> List[ConformanceEdge]:
        return self._walk(type_name, forward=False, transitive=transitive)

    def _walk(self, start: str, forward: bool, transitive: bool) -> List[ConformanceEdge]:
        adjacency: Dict[str, List[ConformanceEdge]] = {}
        for edge in self.conformances:
            key = edge.subtype if forward else edge.supertype
            adjacency.setdefault(key, []).append(edge)

        found: List[ConformanceEdge] = []
        visited = {start}
        frontier = [start]
        while frontier:
            next_frontier: List[str] = []
            for name in frontier:
                for edge in adjacency.get(name, []):
                    found.append(edge)
                    other = edge.supertype if forward else edge.subtype
                    if other not in visited:
                        visited.add(other)
                        next_frontier.append(other)
            if not transitive:
                break
            frontier = next_frontier
        return sorted(set(found), key=lambda e: (e.subtype, e.supertype, e.file_path))

    def stats(self) -> Dict[str, int]:
        return {
            "files": len(self.files),
            "symbols": sum(len(d) for d in self.file_declarations.values()),
            "references": sum(len(r) for r in self.references.values()),
            "conformances": len(self.conformances),
        }


def _unique_references(refs: Iterable[SymbolReference]) -> Tuple[SymbolReference, ...]:
    seen: Set[Tuple[str, int, str]] = set()
    unique: List[SymbolReference] = []
    for ref in sorted(refs, key=lambda r: r.line):
        key = (ref.file_path, ref.line, ref.name)
        if key in seen:
            continue
        seen.add(key)
        unique.append(ref)
    return tuple(unique)
