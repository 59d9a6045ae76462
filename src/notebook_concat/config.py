"""Configuration for concat documents, loaded from notebook-concat.toml."""

from __future__ import annotations

import tomllib
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from notebook_concat.uris import PYTHON_LANGUAGE

CONFIG_FILENAME = "notebook-concat.toml"


def empty_header(uri: str) -> str:
    return ""


def constant_header(text: str) -> Callable[[str], str]:
    """Header factory that ignores the document URI."""

    def factory(uri: str) -> str:
        return text

    return factory


@dataclass(frozen=True)
class ConcatConfig:
    """Settings fixed for the lifetime of a concat document."""

    disable_type_ignore: bool = False
    header_factory: Callable[[str], str] = empty_header
    language_id: str = PYTHON_LANGUAGE


def find_config(start_path: Path | None = None) -> Path:
    """Walk up directories to find notebook-concat.toml. Raises FileNotFoundError."""
    path = (start_path or Path.cwd()).resolve()
    if path.is_file():
        path = path.parent
    while True:
        candidate = path / CONFIG_FILENAME
        if candidate.exists():
            return candidate
        parent = path.parent
        if parent == path:
            raise FileNotFoundError(f"No {CONFIG_FILENAME} found in any parent directory")
        path = parent


def load_config(path: Path) -> ConcatConfig:
    """Parse the ``[concat]`` table of a config file into a ConcatConfig."""
    with open(path, "rb") as f:
        data = tomllib.load(f)

    section = data.get("concat", {})
    header = section.get("header", "")
    return ConcatConfig(
        disable_type_ignore=section.get("disable_type_ignore", False),
        header_factory=constant_header(header) if header else empty_header,
        language_id=section.get("language", PYTHON_LANGUAGE),
    )
