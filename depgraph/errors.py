"""Exception hierarchy for depgraph.

Every error carries the process exit code the CLI reports for it, and a
context dict describing the offending input.
"""

from __future__ import annotations

from typing import Any


class DepGraphError(Exception):
    """Base exception for all depgraph errors."""

    exit_code = 1

    def __init__(self, message: str, **context: Any) -> None:
        self.message = message
        self.context = context
        super().__init__(message)

    def __repr__(self) -> str:
        ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        return f"{self.__class__.__name__}(message={self.message!r}, {ctx_str})"


class ScanError(DepGraphError):
    """The project root is missing or cannot be read."""

    exit_code = 3


class ExtractionWarning(DepGraphError):
    """A single file could only be partially extracted.

    Collected and logged, never raised out of an index build.
    """

    def __init__(self, file_path: str, message: str, line: int = 0) -> None:
        super().__init__(message, file_path=file_path, line=line)
        self.file_path = file_path
        self.line = line

    def __str__(self) -> str:
        where = f"{self.file_path}:{self.line}" if self.line else self.file_path
        return f"{where}: {self.message}"


class UnknownFileError(DepGraphError):
    """The queried file is not part of the index."""

    exit_code = 4

    def __init__(self, file_path: str) -> None:
        super().__init__(
            f"File '{file_path}' is not in the index. "
            "Check the path is relative to the project root, or re-run 'depgraph index'.",
            file_path=file_path,
        )
        self.file_path = file_path


class CorruptIndexError(DepGraphError):
    """The stored index is missing, unreadable, or from another schema version."""

    exit_code = 5


class InvalidRangeError(DepGraphError):
    """A line range is malformed or inverted."""

    exit_code = 2

    def __init__(self, value: str, reason: str) -> None:
        super().__init__(f"Invalid line range '{value}': {reason}", value=value)
        self.value = value
        self.reason = reason


class IndexBuildCancelled(DepGraphError):
    """An index build was interrupted before all files were processed."""

    exit_code = 130
