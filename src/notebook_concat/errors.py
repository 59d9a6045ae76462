"""Exceptions raised by the concatenation layer."""

from __future__ import annotations


class ConcatError(Exception):
    """Base class for errors reported to callers of a concat document."""


class FragmentNotFoundError(ConcatError, LookupError):
    """A query named a cell URI that is not part of the document."""

    def __init__(self, uri: str) -> None:
        self.uri = uri
        super().__init__(f"cell '{uri}' is not open in this document")


class InvalidLineError(ConcatError, ValueError):
    """A line-based query fell outside the valid line range."""

    def __init__(self, line: int, line_count: int) -> None:
        self.line = line
        self.line_count = line_count
        super().__init__(f"line {line} is out of range [0, {line_count})")


class NotebookFormatError(ConcatError):
    """A notebook file could not be read as nbformat JSON."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")
