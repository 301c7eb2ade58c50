"""Inheritance-clause parsing for Swift type declarations."""

from __future__ import annotations

import re
from typing import List

from .models import ConformanceEdge, SymbolKind

_TOKEN_RE = re.compile(r"[A-Za-z_$][\w$]*|\S")

_INTRODUCERS = {"class", "actor", "struct", "enum", "protocol", "extension"}


class ConformanceResolver:
    """Extract subtype -> supertype edges from a declaration header.

    The header is the text from the type keyword up to (not including) the
    opening brace, e.g. ``class Cache<Key: Hashable>: Store, @unchecked Sendable
    where Key: Codable``. Only direct edges are produced; callers walk the
    edges if they need transitive conformance.
    """

    def resolve(
        self,
        kind: SymbolKind,
        name: str,
        header: str,
        file_path: str,
    ) -> List[ConformanceEdge]:
        if not kind.is_type:
            return []
        return [
            ConformanceEdge(subtype=name, supertype=supertype, file_path=file_path)
            for supertype in self.supertypes(header)
        ]

    def supertypes(self, header: str) -> List[str]:
        """Return the names listed in the inheritance clause of *header*."""
        tokens = _TOKEN_RE.findall(header)
        i = self._skip_declared_name(tokens)
        if i >= len(tokens) or tokens[i] != ":":
            return []

        result: List[str] = []
        for entry in self._split_entries(tokens[i + 1:]):
            for name in self._entry_names(entry):
                if name not in result:
                    result.append(name)
        return result

    @staticmethod
    def _skip_declared_name(tokens: List[str]) -> int:
        i = 0
        while i < len(tokens) and tokens[i] not in _INTRODUCERS:
            i += 1
        i += 1
        # dotted type path: Outer.Inner
        while i < len(tokens):
            if tokens[i] in (".", "`"):
                i += 1
            elif _is_identifier(tokens[i]) and tokens[i] != "where":
                i += 1
                if i < len(tokens) and tokens[i] == ".":
                    continue
                break
            else:
                break
        if i < len(tokens) and tokens[i] == "<":
            i = _skip_angle_brackets(tokens, i)
        return i

    @staticmethod
    def _split_entries(tokens: List[str]) -> List[List[str]]:
        entries: List[List[str]] = []
        current: List[str] = []
        angle = 0
        paren = 0
        for tok in tokens:
            if angle == 0 and paren == 0 and tok in ("where", "{"):
                break
            if tok == "<":
                angle += 1
            elif tok == ">":
                angle = max(0, angle - 1)
            elif tok == "(":
                paren += 1
            elif tok == ")":
                paren = max(0, paren - 1)
            if tok in (",", "&") and angle == 0 and paren == 0:
                entries.append(current)
                current = []
                continue
            current.append(tok)
        entries.append(current)
        return [e for e in entries if e]

    @staticmethod
    def _entry_names(entry: List[str]) -> List[str]:
        """Reduce one inheritance entry to its type name.

        Attributes (``@unchecked``) and generic arguments are dropped; dotted
        paths are kept as written. Suppressed conformances (``~Copyable``)
        yield nothing.
        """
        parts: List[str] = []
        i = 0
        while i < len(entry):
            tok = entry[i]
            if tok == "@":
                i += 2
                continue
            if tok == "~":
                # ~Copyable suppresses a conformance rather than adding one
                return []
            if tok == "`":
                i += 1
                continue
            if tok == "<":
                i = _skip_angle_brackets(entry, i)
                continue
            if tok == "." and parts:
                parts.append(tok)
            elif _is_identifier(tok):
                if parts and parts[-1] != ".":
                    break
                parts.append(tok)
            else:
                break
            i += 1
        while parts and parts[-1] == ".":
            parts.pop()
        return ["".join(parts)] if parts else []


def _is_identifier(tok: str) -> bool:
    return bool(tok) and (tok[0].isalpha() or tok[0] in "_$")


def _skip_angle_brackets(tokens: List[str], i: int) -> int:
    depth = 0
    while i < len(tokens):
        if tokens[i] == "<":
            depth += 1
        elif tokens[i] == ">":
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return i
