"""URI scheme classification for notebook cells and concat documents."""

from __future__ import annotations

import posixpath
from urllib.parse import urlparse, urlunparse

NOTEBOOK_SCHEME = "vscode-notebook"
NOTEBOOK_CELL_SCHEME = "vscode-notebook-cell"
INTERACTIVE_INPUT_SCHEME = "vscode-interactive-input"
INTERACTIVE_SCHEME = "vscode-interactive"
PYTHON_LANGUAGE = "python"

# Prefix of the generated file name handed to the analysis backend.
CONCAT_PREFIX = "_NotebookConcat_"


def is_interactive_cell(uri: str) -> bool:
    """True for interactive window history cells and the input box."""
    parsed = urlparse(uri)
    return (
        INTERACTIVE_SCHEME in parsed.fragment
        or parsed.path.endswith(".interactive")
        or INTERACTIVE_INPUT_SCHEME in parsed.scheme
        or INTERACTIVE_SCHEME in parsed.scheme
    )


def is_notebook_cell(uri: str) -> bool:
    scheme = urlparse(uri).scheme
    return NOTEBOOK_CELL_SCHEME in scheme or INTERACTIVE_INPUT_SCHEME in scheme


def is_input_cell(uri: str) -> bool:
    """True for the interactive window's live input box."""
    return urlparse(uri).scheme == INTERACTIVE_INPUT_SCHEME


def notebook_uri_for(cell_uri: str) -> str:
    """Derive the owning notebook URI from a cell URI.

    The cell fragment and query are dropped and the scheme is replaced by the
    notebook (or interactive window) scheme; the path is kept.
    """
    parsed = urlparse(cell_uri)
    scheme = INTERACTIVE_SCHEME if is_interactive_cell(cell_uri) else NOTEBOOK_SCHEME
    return urlunparse((scheme, parsed.netloc, parsed.path, "", "", ""))


def concat_uri_for(notebook_uri: str) -> str:
    """Build the file URI of the synthetic document for a notebook.

    ``vscode-notebook:/work/test.ipynb`` becomes
    ``file:///work/_NotebookConcat_test.ipynb.py``.
    """
    parsed = urlparse(notebook_uri)
    directory, name = posixpath.split(parsed.path or "/")
    path = posixpath.join(directory or "/", f"{CONCAT_PREFIX}{name}.py")
    return urlunparse(("file", parsed.netloc, path, "", "", ""))

