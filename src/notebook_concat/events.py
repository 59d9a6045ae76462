"""Cell lifecycle events consumed by a concat document."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from lsprotocol import types as lsp


@dataclass(frozen=True)
class OpenEvent:
    uri: str
    language_id: str
    version: int
    text: str


@dataclass(frozen=True)
class ChangeEvent:
    """One or more edits to a cell, applied in order.

    Each change is an ``lsp.TextDocumentContentChangePartial`` (with a range)
    or an ``lsp.TextDocumentContentChangeWholeDocument``.
    """

    uri: str
    version: int
    content_changes: Sequence[lsp.TextDocumentContentChangeEvent] = field(default_factory=tuple)


@dataclass(frozen=True)
class CloseEvent:
    uri: str


@dataclass(frozen=True)
class RefreshEvent:
    """Full snapshot of the cell order, sent after moves or re-execution."""

    cells: Sequence[OpenEvent] = field(default_factory=tuple)


NotebookEvent = OpenEvent | ChangeEvent | CloseEvent | RefreshEvent


def from_lsp(params: object) -> NotebookEvent:
    """Convert textDocument/didOpen, didChange or didClose params."""
    if isinstance(params, lsp.DidOpenTextDocumentParams):
        doc = params.text_document
        return OpenEvent(doc.uri, doc.language_id, doc.version, doc.text)
    if isinstance(params, lsp.DidChangeTextDocumentParams):
        doc = params.text_document
        return ChangeEvent(doc.uri, doc.version, tuple(params.content_changes))
    if isinstance(params, lsp.DidCloseTextDocumentParams):
        return CloseEvent(params.text_document.uri)
    raise TypeError(f"unsupported notification params: {type(params).__name__}")


def refresh_from_items(items: Sequence[lsp.TextDocumentItem]) -> RefreshEvent:
    """Build a refresh snapshot from text document items in notebook order."""
    return RefreshEvent(tuple(
        OpenEvent(item.uri, item.language_id, item.version, item.text) for item in items
    ))
