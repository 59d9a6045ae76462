"""Lexical rewriting of IPython-only lines into spans of synthetic text.

Shell escapes (``!ls``), line and cell magics (``%time``, ``%%bash``) and
top-level ``await`` are not valid in a plain Python module. Instead of
removing them, each such line gets a trailing ``# type: ignore`` so that a
standard type checker skips it while every column on the line keeps its
position.

The rewritten text of one cell is described by a list of :class:`Span`
values. Verbatim spans carry cell text; injected spans (the header and the
annotations) carry text that exists only in the synthetic document.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

TYPE_IGNORE = " # type: ignore"

_TYPE_IGNORE_PATTERNS = (
    re.compile(r"^\s*%"),
    re.compile(r"^\s*!"),
    # An operand must follow, so a bare "await" or "await\r" line is left alone.
    re.compile(r"^\s*await\s+\S"),
)


@dataclass(frozen=True)
class Span:
    """A contiguous run of synthetic text.

    ``start_offset``/``end_offset`` are offsets in the synthetic document.
    ``real_offset``/``real_end_offset`` are offsets in the cell's own text;
    for injected spans both equal the cell boundary the span follows.
    """

    uri: str
    text: str
    start_offset: int
    end_offset: int
    real_offset: int
    real_end_offset: int
    in_real_cell: bool

    def __len__(self) -> int:
        return self.end_offset - self.start_offset

    def contains(self, offset: int) -> bool:
        return self.start_offset <= offset < self.end_offset

    def shifted(self, delta: int) -> Span:
        return Span(
            self.uri, self.text,
            self.start_offset + delta, self.end_offset + delta,
            self.real_offset, self.real_end_offset, self.in_real_cell,
        )


def needs_type_ignore(line: str) -> bool:
    """Whether a physical line is a magic, shell escape or top-level await."""
    return any(p.match(line) for p in _TYPE_IGNORE_PATTERNS)


def _verbatim(uri: str, text: str, offset: int, real_offset: int) -> Span:
    return Span(uri, text, offset, offset + len(text), real_offset, real_offset + len(text), True)


def _injected(uri: str, text: str, offset: int, real_offset: int) -> Span:
    return Span(uri, text, offset, offset + len(text), real_offset, real_offset, False)


def create_spans(
    uri: str,
    text: str,
    offset: int,
    real_offset: int,
    *,
    header: str = "",
    type_ignore: bool = True,
) -> list[Span]:
    """Split ``text`` into verbatim and injected spans.

    ``offset`` is where the first span starts in the synthetic document and
    ``real_offset`` the matching offset in the cell. ``header``, when given,
    becomes a leading injected span.
    """
    spans: list[Span] = []
    if header:
        spans.append(_injected(uri, header, offset, real_offset))
        offset += len(header)

    run_start = 0
    line_start = 0
    for line in text.split("\n"):
        line_end = line_start + len(line)
        if type_ignore and needs_type_ignore(line):
            # Keep a \r\n terminator intact; the annotation goes before \r.
            insert_at = line_end - 1 if line.endswith("\r") else line_end
            chunk = text[run_start:insert_at]
            if chunk:
                spans.append(_verbatim(uri, chunk, offset, real_offset + run_start))
                offset += len(chunk)
            spans.append(_injected(uri, TYPE_IGNORE, offset, real_offset + insert_at))
            offset += len(TYPE_IGNORE)
            run_start = insert_at
        line_start = line_end + 1

    rest = text[run_start:]
    if rest:
        spans.append(_verbatim(uri, rest, offset, real_offset + run_start))
    return spans


def to_synthetic_offset(spans: list[Span], real_offset: int) -> int:
    """Map a cell offset to a synthetic offset.

    At a boundary shared with an annotation the position before the
    annotation wins.
    """
    for span in spans:
        if span.in_real_cell and span.real_offset <= real_offset <= span.real_end_offset:
            return span.start_offset + (real_offset - span.real_offset)
    assert spans, "cannot map an offset without spans"
    last = spans[-1]
    if real_offset < spans[0].real_offset:
        return spans[0].start_offset
    return last.end_offset


def to_real_offset(spans: list[Span], offset: int) -> int:
    """Map a synthetic offset to a cell offset.

    Offsets inside injected text clamp to the real boundary the injected
    span sits on.
    """
    for span in spans:
        if span.contains(offset):
            if span.in_real_cell:
                return span.real_offset + (offset - span.start_offset)
            return span.real_offset
    assert spans, "cannot map an offset without spans"
    if offset < spans[0].start_offset:
        return spans[0].real_offset
    return spans[-1].real_end_offset
