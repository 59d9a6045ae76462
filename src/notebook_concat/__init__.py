"""Notebook cell concatenation for Python language servers."""

from __future__ import annotations

__version__ = "0.1.0"

from notebook_concat.config import ConcatConfig
from notebook_concat.converter import NotebookConverter
from notebook_concat.document import NotebookConcatDocument
from notebook_concat.pragma import Span, create_spans

__all__ = [
    "ConcatConfig",
    "NotebookConcatDocument",
    "NotebookConverter",
    "Span",
    "create_spans",
    "__version__",
]
