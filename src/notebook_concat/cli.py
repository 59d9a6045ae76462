"""notebook-concat CLI: inspect the synthetic document of a notebook."""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

import click
from lsprotocol import types as lsp

from notebook_concat import __version__
from notebook_concat.config import ConcatConfig, constant_header, find_config, load_config
from notebook_concat.document import NotebookConcatDocument
from notebook_concat.errors import ConcatError
from notebook_concat.notebook import load_notebook, notebook_uri
from notebook_concat.uris import concat_uri_for


def _resolve_config(notebook: Path, config_path: str | None) -> ConcatConfig:
    if config_path is not None:
        return load_config(Path(config_path))
    try:
        return load_config(find_config(notebook))
    except FileNotFoundError:
        return ConcatConfig()


def _build_document(
    notebook: Path,
    config_path: str | None,
    *,
    no_type_ignore: bool = False,
    header: str | None = None,
) -> NotebookConcatDocument:
    """Load a notebook and open all of its cells into a concat document."""
    config = _resolve_config(notebook, config_path)
    if no_type_ignore:
        config = dataclasses.replace(config, disable_type_ignore=True)
    if header is not None:
        config = dataclasses.replace(config, header_factory=constant_header(header))

    document = NotebookConcatDocument(concat_uri_for(notebook_uri(notebook)), config)
    for event in load_notebook(notebook):
        document.handle_open(event)
    return document


@click.group()
@click.version_option(__version__, prog_name="notebook-concat")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
def main(verbose: bool) -> None:
    """Concatenate notebook cells into one Python document."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


_config_option = click.option(
    "--config", "config_path", type=click.Path(exists=True, dir_okay=False),
    default=None, help="Path to notebook-concat.toml.",
)


@main.command()
@click.argument("notebook", type=click.Path(exists=True, dir_okay=False))
@_config_option
@click.option("--no-type-ignore", is_flag=True, help="Do not annotate magics and shell escapes.")
@click.option("--header", default=None, help="Header text placed before the first cell.")
def render(notebook: str, config_path: str | None, no_type_ignore: bool, header: str | None) -> None:
    """Print the synthetic document for NOTEBOOK."""
    try:
        document = _build_document(
            Path(notebook), config_path, no_type_ignore=no_type_ignore, header=header,
        )
    except ConcatError as e:
        click.echo(f"error: {e}", err=True)
        raise SystemExit(1)
    click.echo(document.get_text(), nl=False)


@main.command(name="map")
@click.argument("notebook", type=click.Path(exists=True, dir_okay=False))
@click.argument("line", type=int)
@click.argument("character", type=int)
@_config_option
def map_cmd(notebook: str, line: int, character: int, config_path: str | None) -> None:
    """Map a 0-indexed LINE:CHARACTER of the synthetic document back to its cell."""
    try:
        document = _build_document(Path(notebook), config_path)
        location = document.notebook_location_at(lsp.Position(line=line, character=character))
    except ConcatError as e:
        click.echo(f"error: {e}", err=True)
        raise SystemExit(1)
    start = location.range.start
    click.echo(f"{location.uri} {start.line}:{start.character}")


@main.command()
@click.argument("notebook", type=click.Path(exists=True, dir_okay=False))
@_config_option
def spans(notebook: str, config_path: str | None) -> None:
    """List the spans each cell contributes to the synthetic document."""
    try:
        document = _build_document(Path(notebook), config_path)
    except ConcatError as e:
        click.echo(f"error: {e}", err=True)
        raise SystemExit(1)

    for uri in document.get_cells():
        click.echo(uri)
        for span in document.get_spans(uri):
            kind = "cell" if span.in_real_cell else "injected"
            click.echo(
                f"  [{span.start_offset}, {span.end_offset}) "
                f"real={span.real_offset} {kind} {span.text!r}"
            )
