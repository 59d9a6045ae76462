"""Reading .ipynb files into cell open events."""

from __future__ import annotations

import json
from pathlib import Path

from notebook_concat.errors import NotebookFormatError
from notebook_concat.events import OpenEvent
from notebook_concat.uris import NOTEBOOK_CELL_SCHEME, NOTEBOOK_SCHEME, PYTHON_LANGUAGE


def notebook_uri(path: Path) -> str:
    return f"{NOTEBOOK_SCHEME}:{path.resolve().as_posix()}"


def cell_uri(path: Path, index: int) -> str:
    return f"{NOTEBOOK_CELL_SCHEME}:{path.resolve().as_posix()}#ch{index:08d}"


def _source(path: Path, index: int, cell: dict) -> str:
    source = cell.get("source", "")
    if isinstance(source, str):
        return source
    if isinstance(source, list) and all(isinstance(part, str) for part in source):
        return "".join(source)
    raise NotebookFormatError(str(path), f"cell {index} has a malformed 'source'")


def _language(path: Path, data: dict) -> str:
    metadata = data.get("metadata", {})
    if not isinstance(metadata, dict):
        raise NotebookFormatError(str(path), "'metadata' is not an object")
    info = metadata.get("language_info", {})
    if not isinstance(info, dict):
        raise NotebookFormatError(str(path), "'language_info' is not an object")
    name = info.get("name")
    return name if isinstance(name, str) and name else PYTHON_LANGUAGE


def load_notebook(path: Path) -> list[OpenEvent]:
    """Return one open event per cell, in notebook order.

    Code cells take the kernel language from ``metadata.language_info``;
    markdown and raw cells keep their cell type as language.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise NotebookFormatError(str(path), str(e)) from e
    if not isinstance(data, dict) or not isinstance(data.get("cells"), list):
        raise NotebookFormatError(str(path), "missing 'cells' list")

    language = _language(path, data)
    events: list[OpenEvent] = []
    for index, cell in enumerate(data["cells"]):
        if not isinstance(cell, dict):
            raise NotebookFormatError(str(path), f"cell {index} is not an object")
        kind = cell.get("cell_type", "code")
        if not isinstance(kind, str):
            raise NotebookFormatError(str(path), f"cell {index} has a malformed 'cell_type'")
        events.append(OpenEvent(
            uri=cell_uri(path, index),
            language_id=language if kind == "code" else kind,
            version=1,
            text=_source(path, index, cell),
        ))
    return events
