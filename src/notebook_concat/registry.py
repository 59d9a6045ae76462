"""Ordered bookkeeping of the cells that make up a concat document."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace

from lsprotocol import types as lsp

from notebook_concat.errors import InvalidLineError
from notebook_concat.uris import is_input_cell


@dataclass(frozen=True)
class Fragment:
    """One open cell: its identity, language, version and raw text."""

    uri: str
    language_id: str
    version: int
    text: str

    @property
    def lines(self) -> list[str]:
        return self.text.split("\n")

    @property
    def is_input(self) -> bool:
        return is_input_cell(self.uri)

    def offset_at(self, position: lsp.Position) -> int:
        """Offset of a cell-local position; the character clamps to the line end."""
        lines = self.lines
        if not 0 <= position.line < len(lines):
            raise InvalidLineError(position.line, len(lines))
        offset = sum(len(line) + 1 for line in lines[: position.line])
        return offset + min(max(position.character, 0), len(lines[position.line]))

    def position_at(self, offset: int) -> lsp.Position:
        offset = min(max(offset, 0), len(self.text))
        line = self.text.count("\n", 0, offset)
        line_start = self.text.rfind("\n", 0, offset) + 1
        return lsp.Position(line=line, character=offset - line_start)


class FragmentRegistry:
    """Cells in concatenation order.

    History cells keep their open order; the interactive input cell, when
    present, always sorts last.
    """

    def __init__(self) -> None:
        self._fragments: list[Fragment] = []

    def __len__(self) -> int:
        return len(self._fragments)

    def __iter__(self) -> Iterator[Fragment]:
        return iter(self._fragments)

    def __contains__(self, uri: str) -> bool:
        return self.index_of(uri) >= 0

    def all(self) -> list[Fragment]:
        return list(self._fragments)

    def get(self, uri: str) -> Fragment | None:
        index = self.index_of(uri)
        return self._fragments[index] if index >= 0 else None

    def index_of(self, uri: str) -> int:
        for i, fragment in enumerate(self._fragments):
            if fragment.uri == uri:
                return i
        return -1

    def open(self, fragment: Fragment) -> int:
        """Insert or re-open a cell. Returns its index."""
        index = self.index_of(fragment.uri)
        if index >= 0:
            existing = self._fragments[index]
            version = max(existing.version + 1, fragment.version)
            self._fragments[index] = replace(fragment, version=version)
            return index
        if not fragment.is_input and self._fragments and self._fragments[-1].is_input:
            index = len(self._fragments) - 1
        else:
            index = len(self._fragments)
        self._fragments.insert(index, fragment)
        return index

    def close(self, uri: str) -> Fragment | None:
        """Remove a cell; unknown URIs are ignored."""
        index = self.index_of(uri)
        if index < 0:
            return None
        return self._fragments.pop(index)

    def apply_change(self, uri: str, start: int, end: int, text: str, version: int) -> Fragment:
        """Replace ``[start, end)`` of a cell's text and store the new version."""
        index = self.index_of(uri)
        assert index >= 0, f"cell '{uri}' is not open"
        fragment = self._fragments[index]
        assert 0 <= start <= end <= len(fragment.text), (
            f"invalid edit range [{start}, {end}) for cell of length {len(fragment.text)}"
        )
        updated = replace(
            fragment,
            text=fragment.text[:start] + text + fragment.text[end:],
            version=max(fragment.version, version),
        )
        self._fragments[index] = updated
        return updated

    def replace_all(self, fragments: Iterable[Fragment]) -> None:
        """Replace the order wholesale, keeping the input cell last."""
        incoming = list(fragments)
        inputs = [f for f in incoming if f.is_input]
        if not inputs:
            inputs = [f for f in self._fragments if f.is_input]
        self._fragments = [f for f in incoming if not f.is_input] + inputs[-1:]
