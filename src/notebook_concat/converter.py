"""Routing between notebook cells and their per-notebook concat documents."""

from __future__ import annotations

import logging
from collections.abc import Iterable

import attrs
from lsprotocol import types as lsp

from notebook_concat.config import ConcatConfig
from notebook_concat.document import NotebookConcatDocument
from notebook_concat.events import ChangeEvent, CloseEvent, OpenEvent, RefreshEvent
from notebook_concat.uris import concat_uri_for, is_notebook_cell, notebook_uri_for

logger = logging.getLogger(__name__)

Outgoing = (
    lsp.DidOpenTextDocumentParams
    | lsp.DidChangeTextDocumentParams
    | lsp.DidCloseTextDocumentParams
)


def _within(document: NotebookConcatDocument, target: lsp.Range) -> lsp.Range | None:
    """Clip a range reported against an older version to the current text."""
    if target.start.line >= document.line_count:
        logger.debug("dropping range %s past the end of %s", target, document.uri)
        return None
    if target.end.line < document.line_count:
        return target
    return lsp.Range(start=target.start, end=document.position_at(len(document.get_text())))


class NotebookConverter:
    """Owns one concat document per notebook.

    Cell events go in, notifications for the synthetic documents come out:
    ``didOpen`` the first time a document gets text, ``didChange`` afterwards
    and ``didClose`` once its last cell is closed.
    """

    def __init__(self, config: ConcatConfig | None = None) -> None:
        self.config = config or ConcatConfig()
        self._documents: dict[str, NotebookConcatDocument] = {}
        self._opened: set[str] = set()
        self._cell_owner: dict[str, str] = {}

    @property
    def documents(self) -> list[NotebookConcatDocument]:
        return list(self._documents.values())

    def get_concat_document(self, cell_uri: str) -> NotebookConcatDocument | None:
        notebook_uri = self._cell_owner.get(cell_uri) or notebook_uri_for(cell_uri)
        return self._documents.get(concat_uri_for(notebook_uri))

    def get_document(self, concat_uri: str) -> NotebookConcatDocument | None:
        return self._documents.get(concat_uri)

    def to_concat_uri(self, cell_uri: str) -> str:
        return concat_uri_for(self._cell_owner.get(cell_uri) or notebook_uri_for(cell_uri))

    # ── Events ───────────────────────────────────────────────────

    def handle_open(self, event: OpenEvent, notebook_uri: str | None = None) -> Outgoing | None:
        if not is_notebook_cell(event.uri):
            logger.debug("%s is not a notebook cell", event.uri)
            return None
        notebook_uri = notebook_uri or notebook_uri_for(event.uri)
        document = self._document_for(notebook_uri)
        change = document.handle_open(event)
        if document.contains(event.uri):
            self._cell_owner[event.uri] = notebook_uri
        elif not document.get_cells():
            self._documents.pop(document.uri, None)
        return self._outgoing(document, change)

    def handle_change(self, event: ChangeEvent) -> Outgoing | None:
        document = self.get_concat_document(event.uri)
        if document is None:
            logger.debug("no concat document for changed cell %s", event.uri)
            return None
        return self._outgoing(document, document.handle_change(event))

    def handle_close(self, event: CloseEvent) -> Outgoing | None:
        document = self.get_concat_document(event.uri)
        self._cell_owner.pop(event.uri, None)
        if document is None:
            return None
        change = document.handle_close(event)
        if not document.get_cells():
            return self._dispose(document)
        return self._outgoing(document, change)

    def handle_refresh(self, notebook_uri: str, event: RefreshEvent) -> Outgoing | None:
        document = self._document_for(notebook_uri)
        for uri in document.get_cells():
            self._cell_owner.pop(uri, None)
        change = document.handle_refresh(event)
        for uri in document.get_cells():
            self._cell_owner[uri] = notebook_uri
        if not document.get_cells():
            return self._dispose(document)
        return self._outgoing(document, change)

    # ── Mapping results back to cells ────────────────────────────

    def to_concat_position(self, cell_uri: str, position: lsp.Position) -> lsp.Position | None:
        document = self.get_concat_document(cell_uri)
        if document is None:
            return None
        location = lsp.Location(uri=cell_uri, range=lsp.Range(start=position, end=position))
        return document.concat_position_at(location)

    def to_notebook_location(
        self, concat_uri: str, target: lsp.Position | lsp.Range,
    ) -> lsp.Location | None:
        document = self._documents.get(concat_uri)
        if document is None:
            return None
        return document.notebook_location_at(target)

    def to_notebook_locations(self, locations: Iterable[lsp.Location]) -> list[lsp.Location]:
        """Rewrite locations in concat documents; others pass through."""
        result: list[lsp.Location] = []
        for location in locations:
            document = self._documents.get(location.uri)
            if document is None:
                result.append(location)
                continue
            target = _within(document, location.range)
            if target is not None and not document.in_header(target.start):
                result.append(document.notebook_location_at(target))
        return result

    def to_notebook_diagnostics(
        self, concat_uri: str, diagnostics: Iterable[lsp.Diagnostic],
    ) -> dict[str, list[lsp.Diagnostic]]:
        """Group diagnostics by cell with cell-local ranges.

        Every open cell gets an entry, so that cells whose problems went away
        are cleared. Diagnostics reported against the header, or starting past
        the end of the document, are dropped.
        """
        document = self._documents.get(concat_uri)
        if document is None:
            return {}
        by_cell: dict[str, list[lsp.Diagnostic]] = {uri: [] for uri in document.get_cells()}
        for diagnostic in diagnostics:
            target = _within(document, diagnostic.range)
            if target is None or document.in_header(target.start):
                continue
            location = document.notebook_location_at(target)
            by_cell.setdefault(location.uri, []).append(
                attrs.evolve(diagnostic, range=location.range)
            )
        return by_cell

    # ── Internals ────────────────────────────────────────────────

    def _document_for(self, notebook_uri: str) -> NotebookConcatDocument:
        concat_uri = concat_uri_for(notebook_uri)
        document = self._documents.get(concat_uri)
        if document is None:
            document = NotebookConcatDocument(concat_uri, self.config)
            self._documents[concat_uri] = document
            logger.debug("created concat document %s for %s", concat_uri, notebook_uri)
        return document

    def _outgoing(
        self,
        document: NotebookConcatDocument,
        change: lsp.DidChangeTextDocumentParams | None,
    ) -> Outgoing | None:
        if change is None:
            return None
        if document.uri not in self._opened:
            self._opened.add(document.uri)
            return lsp.DidOpenTextDocumentParams(
                text_document=lsp.TextDocumentItem(
                    uri=document.uri,
                    language_id=document.language_id,
                    version=document.version,
                    text=document.get_text(),
                ),
            )
        return change

    def _dispose(self, document: NotebookConcatDocument) -> lsp.DidCloseTextDocumentParams | None:
        self._documents.pop(document.uri, None)
        if document.uri not in self._opened:
            return None
        self._opened.discard(document.uri)
        logger.debug("disposed concat document %s", document.uri)
        return lsp.DidCloseTextDocumentParams(
            text_document=lsp.TextDocumentIdentifier(uri=document.uri),
        )
