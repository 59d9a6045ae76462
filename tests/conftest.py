"""Shared pytest fixtures for the notebook-concat test suite."""

from __future__ import annotations

import pytest

from tests.helpers import NOTEBOOK_URI, Cell, make_cells


@pytest.fixture
def basic_cells() -> list[Cell]:
    """Two code cells around a markdown cell."""
    return make_cells(NOTEBOOK_URI, [
        (["print(1)"], "python"),
        (["test"], "markdown"),
        (["foo = 2", "print(foo)"], "python"),
    ])


@pytest.fixture
def magic_cells() -> list[Cell]:
    """Cells starting with top-level await, line/cell magics and a shell escape."""
    return make_cells(NOTEBOOK_URI, [
        (["await print(1)"], "python"),
        (["test"], "markdown"),
        (["%foo = 2", "print(foo)"], "python"),
        (["%%foo = 2", "print(foo)"], "python"),
        (["!foo = 2", "print(foo)"], "python"),
    ])
