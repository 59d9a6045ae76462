"""The concatenated view of a notebook that a Python language server analyzes.

The synthetic text is the optional header followed by each open cell's
rewritten text (see :mod:`notebook_concat.pragma`), every cell terminated by
one newline. Each cell owns a list of spans; together the span lists tile the
whole document, which is what lets positions travel in both directions.
"""

from __future__ import annotations

import logging
import os
from bisect import bisect_right
from dataclasses import dataclass
from typing import assert_never

from lsprotocol import types as lsp

from notebook_concat.config import ConcatConfig
from notebook_concat.errors import FragmentNotFoundError, InvalidLineError
from notebook_concat.events import (
    ChangeEvent,
    CloseEvent,
    NotebookEvent,
    OpenEvent,
    RefreshEvent,
)
from notebook_concat.pragma import Span, create_spans, to_real_offset, to_synthetic_offset
from notebook_concat.registry import Fragment, FragmentRegistry
from notebook_concat.uris import is_input_cell, is_interactive_cell

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextLine:
    """One line of the synthetic document, without its newline."""

    line_number: int
    text: str
    range: lsp.Range

    @property
    def is_empty_or_whitespace(self) -> bool:
        return not self.text.strip()


def _line_starts(text: str) -> list[int]:
    starts = [0]
    index = text.find("\n")
    while index >= 0:
        starts.append(index + 1)
        index = text.find("\n", index + 1)
    return starts


def _position(line_starts: list[int], offset: int) -> lsp.Position:
    line = bisect_right(line_starts, offset) - 1
    return lsp.Position(line=line, character=offset - line_starts[line])


def _edit_between(old: str, new: str) -> lsp.TextDocumentContentChangePartial | None:
    """Smallest single replacement turning ``old`` into ``new``."""
    if old == new:
        return None
    prefix = len(os.path.commonprefix([old, new]))
    limit = min(len(old), len(new)) - prefix
    suffix = 0
    while suffix < limit and old[-1 - suffix] == new[-1 - suffix]:
        suffix += 1
    starts = _line_starts(old)
    return lsp.TextDocumentContentChangePartial(
        range=lsp.Range(
            start=_position(starts, prefix),
            end=_position(starts, len(old) - suffix),
        ),
        text=new[prefix:len(new) - suffix],
    )


class NotebookConcatDocument:
    """Synthetic document built from the code cells of one notebook.

    Every ``handle_*`` method returns the ``didChange`` params to forward to
    the language server for this document's URI, or ``None`` when the event
    left the synthetic text untouched.
    """

    def __init__(self, uri: str, config: ConcatConfig | None = None) -> None:
        self.uri = uri
        self.config = config or ConcatConfig()
        header = self.config.header_factory(uri)
        if header and not header.endswith("\n"):
            header += "\n"
        self._header = header
        self._registry = FragmentRegistry()
        self._spans: list[list[Span]] = []
        self._text = ""
        self._line_starts = [0]
        self._version = 0

    # ── Queries ──────────────────────────────────────────────────

    @property
    def version(self) -> int:
        return self._version

    @property
    def header(self) -> str:
        return self._header

    @property
    def is_interactive(self) -> bool:
        return is_interactive_cell(self.uri)

    @property
    def line_count(self) -> int:
        return len(self._line_starts) - 1

    @property
    def language_id(self) -> str:
        for fragment in self._registry:
            return fragment.language_id
        return ""

    def get_text(self) -> str:
        return self._text

    def get_cells(self) -> list[str]:
        return [fragment.uri for fragment in self._registry]

    def get_fragment(self, uri: str) -> Fragment | None:
        return self._registry.get(uri)

    def contains(self, uri: str) -> bool:
        return uri in self._registry

    def get_spans(self, uri: str) -> list[Span]:
        return list(self._lookup(uri)[1])

    def line_at(self, line: int) -> TextLine:
        if not 0 <= line < self.line_count:
            raise InvalidLineError(line, self.line_count)
        start = self._line_starts[line]
        text = self._text[start:self._line_starts[line + 1] - 1]
        return TextLine(
            line_number=line,
            text=text,
            range=lsp.Range(
                start=lsp.Position(line=line, character=0),
                end=lsp.Position(line=line, character=len(text)),
            ),
        )

    def offset_at(self, position: lsp.Position) -> int:
        """Synthetic offset of a position; the character clamps to the line end."""
        line = position.line
        if not 0 <= line <= self.line_count:
            raise InvalidLineError(line, self.line_count)
        if line == self.line_count:
            return len(self._text)
        start = self._line_starts[line]
        length = self._line_starts[line + 1] - 1 - start
        return start + min(max(position.character, 0), length)

    def position_at(self, offset: int) -> lsp.Position:
        return _position(self._line_starts, min(max(offset, 0), len(self._text)))

    def in_header(self, position: lsp.Position) -> bool:
        """Whether a synthetic position falls inside the generated header."""
        if not self._spans or self._spans[0][0].in_real_cell:
            return False
        return self.offset_at(position) < self._spans[0][0].end_offset

    def notebook_offset_at(self, position: lsp.Position) -> tuple[str, int]:
        """Cell URI and cell offset for a synthetic position.

        With no cells open the document's own URI and offset 0 are returned.
        """
        offset = self.offset_at(position)
        if not self._spans:
            return self.uri, 0
        index = self._fragment_index_at(offset)
        fragment = self._registry.all()[index]
        real = to_real_offset(self._spans[index], offset)
        return fragment.uri, min(real, len(fragment.text))

    def notebook_location_at(self, target: lsp.Position | lsp.Range) -> lsp.Location:
        """Map a synthetic position or range back to a cell.

        Positions inside injected text (the header or a ``# type: ignore``
        suffix) collapse to the nearest real cell boundary. A range whose end
        lies in a later cell is cut at the end of the start's cell.
        """
        if isinstance(target, lsp.Range):
            start, end = target.start, target.end
        else:
            start = end = target

        uri, real_start = self.notebook_offset_at(start)
        fragment = self._registry.get(uri)
        if fragment is None:
            origin = lsp.Position(line=0, character=0)
            return lsp.Location(uri=self.uri, range=lsp.Range(start=origin, end=origin))

        real_end = real_start
        if end is not start:
            end_uri, real_end = self.notebook_offset_at(end)
            if end_uri != uri:
                real_end = len(fragment.text)
            real_end = max(real_end, real_start)
        return lsp.Location(
            uri=uri,
            range=lsp.Range(
                start=fragment.position_at(real_start),
                end=fragment.position_at(real_end),
            ),
        )

    def concat_position_at(self, location: lsp.Location) -> lsp.Position:
        """Map the start of a cell location into the synthetic document."""
        fragment, spans = self._lookup(location.uri)
        real = fragment.offset_at(location.range.start)
        return self.position_at(to_synthetic_offset(spans, real))

    def concat_range_at(self, location: lsp.Location) -> lsp.Range:
        fragment, spans = self._lookup(location.uri)
        start = to_synthetic_offset(spans, fragment.offset_at(location.range.start))
        end = to_synthetic_offset(spans, fragment.offset_at(location.range.end))
        return lsp.Range(start=self.position_at(start), end=self.position_at(max(start, end)))

    def create_spans(self, uri: str, text: str, offset: int, real_offset: int) -> list[Span]:
        """Spans for ``text`` placed at ``offset``, with this document's rules.

        The header is included when ``offset`` is 0 and the cell is not the
        interactive input box.
        """
        header = self._header if offset == 0 and not is_input_cell(uri) else ""
        return create_spans(
            uri, text, offset, real_offset,
            header=header,
            type_ignore=not self.config.disable_type_ignore,
        )

    # ── Events ───────────────────────────────────────────────────

    def handle(self, event: NotebookEvent) -> lsp.DidChangeTextDocumentParams | None:
        if isinstance(event, OpenEvent):
            return self.handle_open(event)
        if isinstance(event, ChangeEvent):
            return self.handle_change(event)
        if isinstance(event, CloseEvent):
            return self.handle_close(event)
        if isinstance(event, RefreshEvent):
            return self.handle_refresh(event)
        assert_never(event)

    def handle_open(self, event: OpenEvent) -> lsp.DidChangeTextDocumentParams | None:
        if not self._accepts(event):
            logger.debug("not concatenating %s (language %s)", event.uri, event.language_id)
            return None
        old_text = self._text
        self._registry.open(Fragment(event.uri, event.language_id, event.version, event.text))
        self._rebuild()
        return self._emit(_edit_between(old_text, self._text))

    def handle_close(self, event: CloseEvent) -> lsp.DidChangeTextDocumentParams | None:
        old_text = self._text
        if self._registry.close(event.uri) is None:
            logger.debug("ignoring close of unknown cell %s", event.uri)
            return None
        self._rebuild()
        return self._emit(_edit_between(old_text, self._text))

    def handle_refresh(self, event: RefreshEvent) -> lsp.DidChangeTextDocumentParams | None:
        old_text = self._text
        self._registry.replace_all(
            Fragment(cell.uri, cell.language_id, cell.version, cell.text)
            for cell in event.cells
            if self._accepts(cell)
        )
        self._rebuild()
        logger.debug("refreshed %s with %d cells", self.uri, len(self._registry))
        if self._text == old_text:
            return None
        return self._emit(lsp.TextDocumentContentChangeWholeDocument(text=self._text))

    def handle_change(self, event: ChangeEvent) -> lsp.DidChangeTextDocumentParams | None:
        fragment = self._registry.get(event.uri)
        if fragment is None:
            logger.debug("ignoring change to unknown cell %s", event.uri)
            return None
        if event.version <= fragment.version:
            logger.debug(
                "ignoring stale change to %s (version %d <= %d)",
                event.uri, event.version, fragment.version,
            )
            return None

        changes = [
            self._apply_change(event.uri, event.version, change)
            for change in event.content_changes
        ]
        return self._emit(*changes)

    # ── Internals ────────────────────────────────────────────────

    def _accepts(self, event: OpenEvent) -> bool:
        return event.language_id == self.config.language_id or is_input_cell(event.uri)

    def _lookup(self, uri: str) -> tuple[Fragment, list[Span]]:
        index = self._registry.index_of(uri)
        if index < 0:
            raise FragmentNotFoundError(uri)
        return self._registry.all()[index], self._spans[index]

    def _fragment_index_at(self, offset: int) -> int:
        starts = [spans[0].start_offset for spans in self._spans]
        index = bisect_right(starts, offset) - 1
        return min(max(index, 0), len(starts) - 1)

    def _spans_for(self, fragment: Fragment, offset: int) -> list[Span]:
        return self.create_spans(fragment.uri, fragment.text + "\n", offset, 0)

    def _set_text(self, text: str) -> None:
        self._text = text
        self._line_starts = _line_starts(text)

    def _rebuild(self) -> None:
        offset = 0
        self._spans = []
        for fragment in self._registry:
            spans = self._spans_for(fragment, offset)
            self._spans.append(spans)
            offset = spans[-1].end_offset
        self._set_text("".join(span.text for spans in self._spans for span in spans))

    def _apply_change(
        self, uri: str, version: int, change: lsp.TextDocumentContentChangeEvent,
    ) -> lsp.TextDocumentContentChangePartial:
        index = self._registry.index_of(uri)
        fragment = self._registry.all()[index]
        old_spans = self._spans[index]
        cell_start = old_spans[0].start_offset
        cell_end = old_spans[-1].end_offset

        change_range = getattr(change, "range", None)
        if change_range is None:
            real_start, real_end = 0, len(fragment.text)
        else:
            real_start = fragment.offset_at(change_range.start)
            real_end = fragment.offset_at(change_range.end)
        assert real_start <= real_end, f"inverted edit range {change_range} for {uri}"

        start = to_synthetic_offset(old_spans, real_start)
        end = to_synthetic_offset(old_spans, real_end)
        narrow_range = lsp.Range(start=self.position_at(start), end=self.position_at(end))
        cell_range = lsp.Range(start=self.position_at(cell_start), end=self.position_at(cell_end))

        fragment = self._registry.apply_change(uri, real_start, real_end, change.text, version)
        new_spans = self._spans_for(fragment, cell_start)
        old_segment = self._text[cell_start:cell_end]
        new_segment = "".join(span.text for span in new_spans)

        # A verbatim splice is only valid when no annotation appeared or vanished.
        spliced = (
            old_segment[:start - cell_start] + change.text + old_segment[end - cell_start:]
        )
        if spliced == new_segment:
            outgoing = lsp.TextDocumentContentChangePartial(range=narrow_range, text=change.text)
        else:
            logger.debug("annotation changed in %s, replacing the whole cell", uri)
            outgoing = lsp.TextDocumentContentChangePartial(range=cell_range, text=new_segment)

        delta = len(new_segment) - (cell_end - cell_start)
        self._spans[index] = new_spans
        for later in range(index + 1, len(self._spans)):
            self._spans[later] = [span.shifted(delta) for span in self._spans[later]]
        self._set_text(self._text[:cell_start] + new_segment + self._text[cell_end:])
        return outgoing

    def _emit(
        self, *changes: lsp.TextDocumentContentChangeEvent | None,
    ) -> lsp.DidChangeTextDocumentParams | None:
        content_changes = [change for change in changes if change is not None]
        if not content_changes:
            return None
        self._version += 1
        return lsp.DidChangeTextDocumentParams(
            text_document=lsp.VersionedTextDocumentIdentifier(uri=self.uri, version=self._version),
            content_changes=content_changes,
        )
