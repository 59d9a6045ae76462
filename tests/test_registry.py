"""Tests for cell bookkeeping."""

from __future__ import annotations

import pytest
from lsprotocol import types as lsp

from notebook_concat.errors import InvalidLineError
from notebook_concat.registry import Fragment, FragmentRegistry

INPUT_URI = "vscode-interactive-input:/1.interactive"


def _fragment(uri: str, text: str = "x", version: int = 1) -> Fragment:
    return Fragment(uri, "python", version, text)


class TestFragment:
    def test_offset_at(self):
        fragment = _fragment("a", "foo = 2\nprint(foo)")
        assert fragment.offset_at(lsp.Position(line=1, character=3)) == 11

    def test_offset_at_clamps_character(self):
        fragment = _fragment("a", "foo\nbar")
        assert fragment.offset_at(lsp.Position(line=0, character=99)) == 3

    def test_offset_at_bad_line(self):
        fragment = _fragment("a", "foo\nbar")
        with pytest.raises(InvalidLineError):
            fragment.offset_at(lsp.Position(line=2, character=0))

    def test_position_at(self):
        fragment = _fragment("a", "foo\nbar")
        assert fragment.position_at(5) == lsp.Position(line=1, character=1)
        assert fragment.position_at(100) == lsp.Position(line=1, character=3)

    def test_is_input(self):
        assert _fragment(INPUT_URI).is_input
        assert not _fragment("vscode-notebook-cell:/a.ipynb#ch0").is_input


class TestFragmentRegistry:
    def test_open_appends(self):
        registry = FragmentRegistry()
        registry.open(_fragment("a"))
        registry.open(_fragment("b"))
        assert [f.uri for f in registry.all()] == ["a", "b"]
        assert len(registry) == 2

    def test_input_stays_last(self):
        registry = FragmentRegistry()
        registry.open(_fragment(INPUT_URI))
        registry.open(_fragment("a"))
        registry.open(_fragment("b"))
        assert [f.uri for f in registry] == ["a", "b", INPUT_URI]

    def test_reopen_replaces_and_bumps_version(self):
        registry = FragmentRegistry()
        registry.open(_fragment("a", "old", version=3))
        index = registry.open(_fragment("a", "new", version=1))
        assert index == 0
        assert registry.get("a").text == "new"
        assert registry.get("a").version == 4

    def test_contains(self):
        registry = FragmentRegistry()
        registry.open(_fragment("a"))
        assert "a" in registry
        assert "b" not in registry

    def test_close(self):
        registry = FragmentRegistry()
        registry.open(_fragment("a"))
        assert "a" in registry
        assert registry.close("a").uri == "a"
        assert registry.get("a") is None
        assert "a" not in registry

    def test_close_unknown_is_noop(self):
        registry = FragmentRegistry()
        assert registry.close("missing") is None

    def test_apply_change(self):
        registry = FragmentRegistry()
        registry.open(_fragment("a", "foo = 2"))
        updated = registry.apply_change("a", 0, 3, "bar", 2)
        assert updated.text == "bar = 2"
        assert registry.get("a").version == 2

    def test_apply_change_bad_range(self):
        registry = FragmentRegistry()
        registry.open(_fragment("a", "foo"))
        with pytest.raises(AssertionError):
            registry.apply_change("a", 2, 1, "", 2)

    def test_replace_all_reorders(self):
        registry = FragmentRegistry()
        for uri in ("a", "b", "c"):
            registry.open(_fragment(uri))
        registry.replace_all([_fragment("c"), _fragment("a")])
        assert [f.uri for f in registry] == ["c", "a"]

    def test_replace_all_keeps_existing_input(self):
        registry = FragmentRegistry()
        registry.open(_fragment("a"))
        registry.open(_fragment(INPUT_URI, "p."))
        registry.replace_all([_fragment("b")])
        assert [f.uri for f in registry] == ["b", INPUT_URI]
        assert registry.get(INPUT_URI).text == "p."

    def test_replace_all_moves_input_last(self):
        registry = FragmentRegistry()
        registry.replace_all([_fragment(INPUT_URI), _fragment("a")])
        assert [f.uri for f in registry] == ["a", INPUT_URI]
