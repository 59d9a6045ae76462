"""Shared test helpers for the notebook-concat test suite."""

from __future__ import annotations

from dataclasses import dataclass

from lsprotocol import types as lsp

from notebook_concat.config import ConcatConfig, constant_header
from notebook_concat.document import NotebookConcatDocument
from notebook_concat.events import ChangeEvent, OpenEvent, RefreshEvent

HEADER_TEXT = "import IPython\nIPython.get_ipython()"
NOTEBOOK_URI = "vscode-notebook:/test.ipynb"
INTERACTIVE_URI = "vscode-interactive:/test.ipynb"


@dataclass
class Cell:
    uri: str
    source: list[str]
    language_id: str = "python"
    version: int = 1

    @property
    def text(self) -> str:
        return "\n".join(self.source)

    def open_event(self) -> OpenEvent:
        return OpenEvent(self.uri, self.language_id, self.version, self.text)


def make_cells(notebook_uri: str, cells: list[tuple[list[str], str]]) -> list[Cell]:
    """Create cells named like VS Code notebook cell URIs."""
    path = notebook_uri.split(":", 1)[1]
    return [
        Cell(f"vscode-notebook-cell:{path}#ch{i:08d}", source, language)
        for i, (source, language) in enumerate(cells)
    ]


def input_cell(source: list[str]) -> Cell:
    return Cell("vscode-interactive-input:/1.interactive", source)


def generate_concat(
    uri: str,
    cells: list[Cell],
    extra_cells: list[Cell] | None = None,
    *,
    disable_type_ignore: bool = False,
    header: str = HEADER_TEXT,
) -> NotebookConcatDocument:
    config = ConcatConfig(
        disable_type_ignore=disable_type_ignore,
        header_factory=constant_header(header),
    )
    concat = NotebookConcatDocument(uri, config)
    for cell in cells + (extra_cells or []):
        concat.handle_open(cell.open_event())
    return concat


def apply_edit(
    concat: NotebookConcatDocument,
    cell: Cell,
    line: int,
    char: int,
    new_text: str,
    end_line: int | None = None,
    end_char: int | None = None,
) -> lsp.DidChangeTextDocumentParams | None:
    """Send one ranged edit for ``cell`` with the next version number."""
    cell.version += 1
    change = lsp.TextDocumentContentChangePartial(
        range=lsp.Range(
            start=lsp.Position(line=line, character=char),
            end=lsp.Position(
                line=line if end_line is None else end_line,
                character=char if end_char is None else end_char,
            ),
        ),
        text=new_text,
    )
    return concat.handle_change(ChangeEvent(cell.uri, cell.version, (change,)))


def refresh_event(cells: list[Cell]) -> RefreshEvent:
    return RefreshEvent(tuple(c.open_event() for c in cells if c.language_id == "python"))


def joined(*lines: str) -> str:
    """Join lines the way the synthetic document does, with a final newline."""
    return "\n".join([*lines, ""])


def apply_content_changes(text: str, params: lsp.DidChangeTextDocumentParams) -> str:
    """Apply outgoing changes to ``text`` the way a language server would."""
    for change in params.content_changes:
        change_range = getattr(change, "range", None)
        if change_range is None:
            text = change.text
            continue
        starts = [0] + [i + 1 for i, ch in enumerate(text) if ch == "\n"]

        def offset(position: lsp.Position) -> int:
            if position.line >= len(starts):
                return len(text)
            return min(starts[position.line] + position.character, len(text))

        text = text[:offset(change_range.start)] + change.text + text[offset(change_range.end):]
    return text


def rebuild(concat: NotebookConcatDocument) -> NotebookConcatDocument:
    """A fresh document opened from the current cell texts of ``concat``."""
    fresh = NotebookConcatDocument(concat.uri, concat.config)
    for uri in concat.get_cells():
        fragment = concat.get_fragment(uri)
        assert fragment is not None
        fresh.handle_open(OpenEvent(uri, fragment.language_id, 1, fragment.text))
    return fresh
