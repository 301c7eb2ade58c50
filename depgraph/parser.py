"""Lexical symbol extraction for Swift sources.

This is a structural scanner, not a grammar-accurate parser:

- a lexer that understands comments, string literals (including
  multi-line, raw and interpolated strings), identifiers and operators
- a brace-depth pass that recognises declaration keywords and computes the
  line span of each declaration, either up to the closing brace of its body
  or up to the end of its statement
- a reference pass that keeps identifier tokens which are neither keywords,
  declaration names nor argument labels

Malformed input never raises; the scanner keeps whatever it understood and
reports :class:`~depgraph.errors.ExtractionWarning` entries instead.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Set, Tuple

from .conformance import ConformanceResolver
from .errors import ExtractionWarning
from .models import (
    ConformanceEdge,
    FileExtraction,
    SymbolDeclaration,
    SymbolKind,
    SymbolReference,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Swift vocabulary
# ---------------------------------------------------------------------------

DECLARATION_KEYWORDS: Dict[str, SymbolKind] = {
    "class": SymbolKind.CLASS,
    "actor": SymbolKind.CLASS,
    "struct": SymbolKind.STRUCT,
    "enum": SymbolKind.ENUM,
    "protocol": SymbolKind.PROTOCOL,
    "extension": SymbolKind.EXTENSION,
    "func": SymbolKind.FUNCTION,
    "var": SymbolKind.VARIABLE,
    "let": SymbolKind.VARIABLE,
    "typealias": SymbolKind.TYPEALIAS,
    "associatedtype": SymbolKind.TYPEALIAS,
    "init": SymbolKind.INITIALIZER,
    "case": SymbolKind.ENUM_CASE,
}

# Words that may precede a declaration keyword on the same declaration.
MODIFIERS: Set[str] = {
    "public", "private", "fileprivate", "internal", "open", "package",
    "static", "class", "final", "override", "mutating", "nonmutating",
    "convenience", "required", "lazy", "weak", "unowned", "dynamic",
    "optional", "indirect", "prefix", "postfix", "infix", "nonisolated",
    "isolated", "consuming", "borrowing", "distributed",
}

# Contextual keywords that are ordinary identifiers unless used as modifiers.
CONTEXTUAL_MODIFIERS: Set[str] = {
    "open", "optional", "required", "lazy", "dynamic", "weak", "unowned",
    "indirect", "prefix", "postfix", "infix", "isolated", "nonisolated",
    "consuming", "borrowing", "package", "distributed", "actor",
}

STOPWORDS: Set[str] = {
    # declarations
    "associatedtype", "class", "deinit", "enum", "extension", "fileprivate",
    "func", "import", "init", "inout", "internal", "let", "operator",
    "private", "precedencegroup", "protocol", "public", "rethrows", "static",
    "struct", "subscript", "typealias", "var", "final", "override",
    "mutating", "nonmutating", "convenience",
    # statements
    "break", "case", "catch", "continue", "default", "defer", "do", "else",
    "fallthrough", "for", "guard", "if", "in", "repeat", "return", "switch",
    "where", "while", "throw",
    # expressions and types
    "as", "Any", "await", "false", "is", "nil", "self", "Self", "super",
    "throws", "true", "try", "async", "some", "any", "Type", "_",
    # accessors
    "get", "set", "willSet", "didSet", "newValue", "oldValue",
}

COMPILER_DIRECTIVES = {
    "if", "elseif", "else", "endif", "warning", "error", "sourceLocation",
}

_CONTINUES_AFTER = {
    "=", "->", ".", "+", "-", "*", "/", "%", "&&", "||", "??", "&", "|",
    "==", "!=", "<=", ">=", "..<", "...", "+=", "-=", "*=", "/=",
}
_CONTINUES_BEFORE_WORDS = {"where", "throws", "rethrows", "async"}

_OPERATOR_CHARS = set("/=-+!*%<>&|^~?.")
_NUMBER_RE = re.compile(
    r"0[xX][0-9a-fA-F_]+|0[bB][01_]+|0[oO][0-7_]+|\d[\d_]*(?:\.\d[\d_]*)?(?:[eE][+-]?\d+)?"
)

IDENT = "ident"
NUMBER = "number"
STRING = "string"
OPERATOR = "operator"
PUNCT = "punct"


class Token(NamedTuple):
    kind: str
    text: str
    line: int
    quoted: bool = False


# ===================================================================
# Lexer
# ===================================================================

@dataclass
class _Interpolation:
    delimiter: str
    hashes: int
    start_line: int
    depth: int = 0


class SwiftLexer:
    """Turns Swift source text into a flat token list with line numbers."""

    def __init__(self, text: str, file_path: str = "") -> None:
        self.text = text
        self.file_path = file_path
        self.pos = 0
        self.line = 1
        self.tokens: List[Token] = []
        self.warnings: List[ExtractionWarning] = []
        self._interpolations: List[_Interpolation] = []
        # lines that start inside a multi-line string literal
        self.string_lines: Set[int] = set()

    def tokenize(self) -> List[Token]:
        text = self.text
        n = len(text)
        while self.pos < n:
            c = text[self.pos]
            if c == "\n":
                self.line += 1
                self.pos += 1
            elif c.isspace():
                self.pos += 1
            elif text.startswith("//", self.pos):
                end = text.find("\n", self.pos)
                self.pos = n if end == -1 else end
            elif text.startswith("/*", self.pos):
                self._skip_block_comment()
            elif c == '"' or (c == "#" and self._raw_string_hashes() is not None):
                self._lex_string()
            elif c.isalpha() or c == "_" or c == "$":
                self._lex_identifier()
            elif c == "`":
                self._lex_quoted_identifier()
            elif c.isdigit():
                match = _NUMBER_RE.match(text, self.pos)
                self._emit(NUMBER, match.group(0))
                self.pos = match.end()
            elif c in _OPERATOR_CHARS:
                self._lex_operator()
            else:
                self._lex_punct(c)

        if self._interpolations:
            self._warn("unterminated string interpolation", self._interpolations[-1].start_line)
        return self.tokens

    def _emit(self, kind: str, text: str, line: Optional[int] = None, quoted: bool = False) -> None:
        self.tokens.append(Token(kind, text, self.line if line is None else line, quoted))

    def _warn(self, message: str, line: int) -> None:
        self.warnings.append(ExtractionWarning(self.file_path, message, line))

    def _skip_block_comment(self) -> None:
        text = self.text
        start_line = self.line
        depth = 0
        while self.pos < len(text):
            if text.startswith("/*", self.pos):
                depth += 1
                self.pos += 2
            elif text.startswith("*/", self.pos):
                depth -= 1
                self.pos += 2
                if depth == 0:
                    return
            else:
                if text[self.pos] == "\n":
                    self.line += 1
                self.pos += 1
        self._warn("unterminated block comment", start_line)

    def _lex_identifier(self) -> None:
        text = self.text
        start = self.pos
        self.pos += 1
        while self.pos < len(text) and (text[self.pos].isalnum() or text[self.pos] in "_$"):
            self.pos += 1
        self._emit(IDENT, text[start:self.pos])

    def _lex_quoted_identifier(self) -> None:
        end = self.text.find("`", self.pos + 1)
        newline = self.text.find("\n", self.pos + 1)
        if end == -1 or (newline != -1 and newline < end):
            self._lex_punct("`")
            return
        self._emit(IDENT, self.text[self.pos + 1:end], quoted=True)
        self.pos = end + 1

    def _lex_operator(self) -> None:
        text = self.text
        start = self.pos
        while self.pos < len(text) and text[self.pos] in _OPERATOR_CHARS:
            if self.pos > start and (text.startswith("//", self.pos) or text.startswith("/*", self.pos)):
                break
            self.pos += 1
        self._emit(OPERATOR, text[start:self.pos])

    def _lex_punct(self, c: str) -> None:
        self.pos += 1
        if self._interpolations:
            current = self._interpolations[-1]
            if c == "(":
                current.depth += 1
            elif c == ")":
                if current.depth == 0:
                    self._interpolations.pop()
                    self._lex_string_body(current.delimiter, current.hashes, current.start_line)
                    return
                current.depth -= 1
        self._emit(PUNCT, c)

    def _raw_string_hashes(self) -> Optional[int]:
        text = self.text
        p = self.pos
        while p < len(text) and text[p] == "#":
            p += 1
        if p < len(text) and text[p] == '"':
            return p - self.pos
        return None

    def _lex_string(self) -> None:
        hashes = self._raw_string_hashes() or 0
        self.pos += hashes
        delimiter = '"""' if self.text.startswith('"""', self.pos) else '"'
        self.pos += len(delimiter)
        start_line = self.line
        self._emit(STRING, "")
        self._lex_string_body(delimiter, hashes, start_line)

    def _lex_string_body(self, delimiter: str, hashes: int, start_line: int) -> None:
        text = self.text
        closing = delimiter + "#" * hashes
        escape = "\\" + "#" * hashes
        while self.pos < len(text):
            if text.startswith(closing, self.pos):
                self.pos += len(closing)
                self._emit(STRING, "")
                return
            if text.startswith(escape, self.pos):
                after = self.pos + len(escape)
                if after < len(text) and text[after] == "(":
                    self.pos = after + 1
                    self._interpolations.append(_Interpolation(delimiter, hashes, start_line))
                    return
                if after < len(text) and text[after] == "\n":
                    self.line += 1
                    self.string_lines.add(self.line)
                self.pos = after + 1
                continue
            if text[self.pos] == "\n":
                if delimiter == '"':
                    self._warn("unterminated string literal", start_line)
                    return
                self.line += 1
                self.string_lines.add(self.line)
            self.pos += 1
        self._warn("unterminated string literal", start_line)


# ===================================================================
# Structural scan
# ===================================================================

@dataclass
class _DeclBuilder:
    name: str
    kind: SymbolKind
    start_line: int
    end_line: int
    depth: int
    parent: str

    def build(self, file_path: str) -> SymbolDeclaration:
        return SymbolDeclaration(
            name=self.name,
            kind=self.kind,
            file_path=file_path,
            start_line=self.start_line,
            end_line=max(self.start_line, self.end_line),
            depth=self.depth,
            parent=self.parent,
        )


@dataclass
class _Frame:
    decls: List[_DeclBuilder]
    paren_base: int

    @property
    def decl(self) -> Optional[_DeclBuilder]:
        return self.decls[0] if self.decls else None


@dataclass
class _Pending:
    """A declaration whose header has started but whose extent is unknown."""

    decls: List[_DeclBuilder]
    kind: SymbolKind
    paren_base: int
    frame_depth: int
    accepts_body: bool
    header: List[Token] = field(default_factory=list)


class _StructureScanner:
    def __init__(
        self,
        tokens: List[Token],
        file_path: str,
        line_count: int,
        resolver: ConformanceResolver,
        string_lines: Optional[Set[int]] = None,
    ) -> None:
        self.tokens = tokens
        self.string_lines = string_lines or set()
        self.file_path = file_path
        self.line_count = max(1, line_count)
        self.resolver = resolver
        self.decls: List[_DeclBuilder] = []
        self.frames: List[_Frame] = []
        self.pending: Optional[_Pending] = None
        self.paren = 0
        self.brackets: List[str] = []
        self.skip: Set[int] = set()
        self.ignored_lines: Set[int] = set()
        self.references: List[Tuple[str, int]] = []
        self.edges: List[ConformanceEdge] = []
        self.warnings: List[ExtractionWarning] = []

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def run(self) -> None:
        tokens = self.tokens
        for i, tok in enumerate(tokens):
            prev = tokens[i - 1] if i else None
            if (
                self.pending is not None
                and prev is not None
                and tok.line > prev.line
                and tok.line not in self.string_lines
                and self._at_pending_level()
                and not self._continues(prev, tok)
            ):
                self._close_pending(prev.line)

            if tok.kind == PUNCT:
                self._handle_punct(i, tok, prev)
                continue

            if tok.kind == IDENT:
                self._handle_identifier(i, tok, prev)
            elif self.pending is not None:
                self.pending.header.append(tok)

        self._finish()

    def _finish(self) -> None:
        last_line = self.tokens[-1].line if self.tokens else 1
        if self.pending is not None:
            self._close_pending(last_line)
        if self.frames:
            self._warn("unbalanced braces: %d block(s) still open at end of file" % len(self.frames), last_line)
            for frame in self.frames:
                for decl in frame.decls:
                    decl.end_line = self.line_count
            self.frames = []

    # ------------------------------------------------------------------
    # Punctuation
    # ------------------------------------------------------------------

    def _handle_punct(self, i: int, tok: Token, prev: Optional[Token]) -> None:
        text = tok.text
        if text == "{":
            self._open_brace(tok)
            return
        if text == "}":
            self._close_brace(tok, prev)
            return

        if self.pending is not None:
            self.pending.header.append(tok)
        if text in "([":
            self.paren += 1
            self.brackets.append(text)
        elif text in ")]":
            self.paren = max(0, self.paren - 1)
            if self.brackets:
                self.brackets.pop()
        elif text == ";" and self.pending is not None and self._at_pending_level():
            self._close_pending(tok.line)

    def _open_brace(self, tok: Token) -> None:
        pending = self.pending
        if pending is not None and self._at_pending_level():
            if pending.accepts_body and not self._in_initializer(pending):
                self._resolve_conformances(pending)
                self.frames.append(_Frame(decls=pending.decls, paren_base=self.paren))
                self.pending = None
                return
            if not self._in_initializer(pending):
                self._close_pending(tok.line)
        self.frames.append(_Frame(decls=[], paren_base=self.paren))

    def _close_brace(self, tok: Token, prev: Optional[Token]) -> None:
        if self.pending is not None and self.pending.frame_depth == len(self.frames):
            self._close_pending(prev.line if prev is not None else tok.line)
        if not self.frames:
            self._warn("unmatched '}'", tok.line)
            return
        frame = self.frames.pop()
        self.paren = frame.paren_base
        del self.brackets[frame.paren_base:]
        for decl in frame.decls:
            decl.end_line = tok.line

    # ------------------------------------------------------------------
    # Identifiers
    # ------------------------------------------------------------------

    def _handle_identifier(self, i: int, tok: Token, prev: Optional[Token]) -> None:
        if tok.text == "import" and not tok.quoted and self._starts_statement(i):
            self.ignored_lines.add(tok.line)
            return
        if prev is not None and prev.text == "#" and tok.text in COMPILER_DIRECTIVES:
            self.ignored_lines.add(tok.line)
            return
        if prev is not None and prev.text == "@" and tok.text[:1].islower():
            if self.pending is not None:
                self.pending.header.append(tok)
            self._skip_attribute_arguments(i)
            return

        kind = None if tok.quoted else DECLARATION_KEYWORDS.get(tok.text)
        if kind is not None and self._is_declaration(i, tok, prev):
            self._begin_declaration(i, tok, kind)
            return

        pending = self.pending
        if pending is not None:
            pending.header.append(tok)
        if (
            pending is not None
            and pending.kind is SymbolKind.ENUM_CASE
            and prev is not None
            and prev.text == ","
            and self.paren == pending.paren_base
        ):
            first = pending.decls[0]
            extra = _DeclBuilder(tok.text, SymbolKind.ENUM_CASE, tok.line, tok.line, first.depth, first.parent)
            pending.decls.append(extra)
            self.decls.append(extra)
            self.skip.add(i)
            return

        if self._is_reference(i, tok, prev):
            name = tok.text
            if name.startswith("$"):
                # $0 closure shorthands are anonymous; $name projects a wrapped property
                name = name[1:]
                if not name or name[0].isdigit():
                    return
            self.references.append((name, tok.line))

    def _skip_attribute_arguments(self, i: int) -> None:
        """Builtin attributes such as ``@available(iOS 15, *)`` reference nothing."""
        opening = self._token(i + 1)
        if opening is None or opening.text != "(" or opening.line != self.tokens[i].line:
            return
        depth = 0
        for j in range(i + 1, len(self.tokens)):
            text = self.tokens[j].text
            if text == "(":
                depth += 1
            elif text == ")":
                depth -= 1
                if depth == 0:
                    return
            elif self.tokens[j].kind == IDENT:
                self.skip.add(j)

    def _is_declaration(self, i: int, tok: Token, prev: Optional[Token]) -> bool:
        text = tok.text
        nxt = self._token(i + 1)
        if text in ("class", "actor"):
            return (
                nxt is not None
                and nxt.kind == IDENT
                and (nxt.quoted or (nxt.text not in DECLARATION_KEYWORDS and nxt.text not in MODIFIERS))
            )
        if text == "init":
            return prev is None or not prev.text.endswith(".")
        if text == "case":
            frame = self.frames[-1] if self.frames else None
            return (
                frame is not None
                and frame.decl is not None
                and frame.decl.kind is SymbolKind.ENUM
                and self.paren == frame.paren_base
            )
        return True

    def _begin_declaration(self, i: int, tok: Token, kind: SymbolKind) -> None:
        if self.pending is not None:
            if not self._at_pending_level():
                # e.g. a closure in a default argument; nothing declared here is a symbol
                if kind is SymbolKind.VARIABLE:
                    self._binding_names(i)
                elif self._token(i + 1) is not None and self.tokens[i + 1].kind == IDENT:
                    self.skip.add(i + 1)
                return
            self._close_pending(self.tokens[i - 1].line)

        start_line = self._prefix_start_line(i)
        decl_frames = [f for f in self.frames if f.decl is not None]
        depth = len(decl_frames)
        parent = decl_frames[-1].decl.name if decl_frames else ""

        if kind is SymbolKind.VARIABLE:
            names = self._binding_names(i)
            innermost = self.frames[-1].decl if self.frames else None
            at_type_level = not self.frames or (innermost is not None and innermost.kind.is_type)
            if not at_type_level or not names:
                return
            builders = [_DeclBuilder(name, kind, start_line, tok.line, depth, parent) for name in names]
        else:
            name = self._declaration_name(i, kind)
            if name is None:
                self._warn("'%s' declaration without a name" % tok.text, tok.line)
                return
            builders = [_DeclBuilder(name, kind, start_line, tok.line, depth, parent)]

        self.decls.extend(builders)
        self.pending = _Pending(
            decls=builders,
            kind=kind,
            paren_base=self.paren,
            frame_depth=len(self.frames),
            accepts_body=kind not in (SymbolKind.ENUM_CASE, SymbolKind.TYPEALIAS),
            header=[tok],
        )

    def _declaration_name(self, i: int, kind: SymbolKind) -> Optional[str]:
        if kind is SymbolKind.INITIALIZER:
            return "init"

        nxt = self._token(i + 1)
        if nxt is None:
            return None
        if kind is SymbolKind.EXTENSION:
            # The extended type stays a reference: the extension depends on it.
            j = i + 1
            name = None
            while True:
                part = self._token(j)
                if part is None or part.kind != IDENT:
                    break
                name = part.text
                follow = self._token(j + 1)
                if follow is None or follow.text != "." or follow.line != part.line:
                    break
                j += 2
            return name
        if nxt.kind == IDENT:
            self.skip.add(i + 1)
            return nxt.text
        if kind is SymbolKind.FUNCTION and nxt.kind == OPERATOR:
            return nxt.text
        return None

    def _binding_names(self, i: int) -> List[str]:
        nxt = self._token(i + 1)
        if nxt is None:
            return []
        if nxt.kind == IDENT:
            self.skip.add(i + 1)
            return [] if nxt.text == "_" else [nxt.text]
        if nxt.text != "(":
            return []

        names: List[str] = []
        depth = 0
        j = i + 1
        while j < len(self.tokens):
            t = self.tokens[j]
            if t.text == "(":
                depth += 1
            elif t.text == ")":
                depth -= 1
                if depth == 0:
                    break
            elif t.kind == IDENT and depth == 1 and t.text != "_":
                follow = self._token(j + 1)
                if follow is not None and follow.text in (",", ")"):
                    names.append(t.text)
                    self.skip.add(j)
            j += 1
        return names

    def _is_reference(self, i: int, tok: Token, prev: Optional[Token]) -> bool:
        if i in self.skip or tok.line in self.ignored_lines:
            return False
        nxt = self._token(i + 1)
        if not tok.quoted:
            if tok.text in STOPWORDS:
                return False
            if (
                tok.text in CONTEXTUAL_MODIFIERS
                and nxt is not None
                and nxt.kind == IDENT
                and nxt.line == tok.line
            ):
                return False
        if prev is not None and prev.text == "#":
            return False

        # argument labels, parameter names and external labels; dictionary keys stay references
        in_parens = bool(self.brackets) and self.brackets[-1] == "("
        if in_parens and prev is not None and prev.text in ("(", ","):
            if nxt is not None and nxt.text == ":":
                return False
            after = self._token(i + 2)
            if nxt is not None and nxt.kind == IDENT and after is not None and after.text == ":":
                return False
        if nxt is not None and nxt.text == ":" and prev is not None and prev.kind == IDENT:
            before = self._token(i - 2)
            if in_parens and before is not None and before.text in ("(", ","):
                return False
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _token(self, j: int) -> Optional[Token]:
        if 0 <= j < len(self.tokens):
            return self.tokens[j]
        return None

    def _at_pending_level(self) -> bool:
        pending = self.pending
        return (
            pending is not None
            and pending.frame_depth == len(self.frames)
            and self.paren <= pending.paren_base
        )

    @staticmethod
    def _in_initializer(pending: _Pending) -> bool:
        """A ``{`` after ``=`` opens a closure in the initial value, not a body."""
        return pending.kind is SymbolKind.VARIABLE and any(
            t.kind == OPERATOR and t.text == "=" for t in pending.header
        )

    def _starts_statement(self, i: int) -> bool:
        prev = self._token(i - 1)
        return prev is None or prev.line < self.tokens[i].line or prev.text in (";", "{", "}")

    def _continues(self, prev: Token, tok: Token) -> bool:
        """Whether a line break between *prev* and *tok* keeps the declaration open."""
        if prev.kind == OPERATOR and prev.text in _CONTINUES_AFTER:
            return True
        if prev.kind == PUNCT and prev.text in (",", ":", "@", "(", "["):
            return True
        if tok.kind == OPERATOR and not tok.text.startswith("!"):
            return True
        if tok.kind == PUNCT and tok.text == ":":
            return True
        if tok.text == "{" and tok.kind == PUNCT:
            return self.pending is not None and self.pending.accepts_body
        return tok.kind == IDENT and not tok.quoted and tok.text in _CONTINUES_BEFORE_WORDS

    def _prefix_start_line(self, i: int) -> int:
        """Line of the first attribute or modifier belonging to the declaration at *i*."""
        tokens = self.tokens
        start = i
        j = i - 1
        while j >= 0:
            t = tokens[j]
            if t.kind == IDENT and not t.quoted and t.text in MODIFIERS:
                start = j
                j -= 1
                continue
            if t.kind == IDENT and j >= 1 and tokens[j - 1].text == "@":
                start = j - 1
                j -= 2
                continue
            if t.text == ")":
                k = self._matching_open_paren(j)
                if k is not None and k >= 1:
                    before = tokens[k - 1]
                    if before.kind == IDENT and before.text in MODIFIERS:
                        start = k - 1
                        j = k - 2
                        continue
                    if before.kind == IDENT and k >= 2 and tokens[k - 2].text == "@":
                        start = k - 2
                        j = k - 3
                        continue
            break
        return tokens[start].line

    def _matching_open_paren(self, j: int) -> Optional[int]:
        depth = 0
        while j >= 0:
            text = self.tokens[j].text
            if text == ")":
                depth += 1
            elif text == "(":
                depth -= 1
                if depth == 0:
                    return j
            elif text in ("{", "}"):
                return None
            j -= 1
        return None

    def _close_pending(self, end_line: int) -> None:
        pending = self.pending
        if pending is None:
            return
        for decl in pending.decls:
            decl.end_line = max(decl.start_line, end_line)
        self._resolve_conformances(pending)
        self.pending = None

    def _resolve_conformances(self, pending: _Pending) -> None:
        if not pending.kind.is_type or not pending.decls:
            return
        decl = pending.decls[0]
        header = " ".join(t.text for t in pending.header if t.kind != STRING)
        self.edges.extend(self.resolver.resolve(decl.kind, decl.name, header, self.file_path))

    def _warn(self, message: str, line: int) -> None:
        self.warnings.append(ExtractionWarning(self.file_path, message, line))


# ===================================================================
# Public extractor API
# ===================================================================

class SymbolExtractor(ABC):
    """Abstract base class for per-file symbol extractors."""

    supported_extensions: Tuple[str, ...] = ()

    @abstractmethod
    def extract(self, text: str, file_path: str) -> FileExtraction:
        """Extract declarations, references and conformances from one file."""
        ...

    def can_extract(self, path: Path) -> bool:
        return Path(path).suffix in self.supported_extensions


class SwiftSymbolExtractor(SymbolExtractor):
    """Best-effort structural extractor for Swift source files."""

    supported_extensions = (".swift",)

    def __init__(self, resolver: Optional[ConformanceResolver] = None) -> None:
        self.resolver = resolver or ConformanceResolver()

    def extract(self, text: str, file_path: str) -> FileExtraction:
        lexer = SwiftLexer(text, file_path)
        tokens = lexer.tokenize()

        scanner = _StructureScanner(
            tokens, file_path, len(text.splitlines()), self.resolver, string_lines=lexer.string_lines,
        )
        scanner.run()

        seen: Set[Tuple[int, str]] = set()
        references: List[SymbolReference] = []
        for name, line in scanner.references:
            if (line, name) in seen:
                continue
            seen.add((line, name))
            references.append(SymbolReference(name=name, file_path=file_path, line=line))

        warnings = tuple(lexer.warnings + scanner.warnings)
        for warning in warnings:
            logger.debug("Extraction warning: %s", warning)

        return FileExtraction(
            file_path=file_path,
            declarations=tuple(d.build(file_path) for d in scanner.decls),
            references=tuple(references),
            conformances=tuple(dict.fromkeys(scanner.edges)),
            warnings=warnings,
        )


def top_level(declarations: List[SymbolDeclaration]) -> List[SymbolDeclaration]:
    """Filter *declarations* down to those not nested in another declaration."""
    return [d for d in declarations if d.depth == 0]
