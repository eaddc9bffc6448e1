"""Command-line interface for Postpress.

This module defines the CLI commands using the Click framework.

Commands:
- build: Render the site into the destination directory.
- serve: Build, serve the result locally and rebuild on changes.
"""

from __future__ import annotations

from pathlib import Path

import click

from . import __version__
from .logger import configure_logging

_source_option = click.option(
    "-s",
    "--source",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Site source directory",
)
_destination_option = click.option(
    "-d",
    "--destination",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output directory (overrides _config.yml)",
)
_drafts_option = click.option("--drafts", is_flag=True, help="Render posts in _drafts")
_jobs_option = click.option(
    "-j", "--jobs", type=click.IntRange(min=1), default=1, show_default=True,
    help="Worker threads used to render documents",
)
_verbose_option = click.option("-v", "--verbose", is_flag=True, help="Log every rendered page")


@click.group()
@click.version_option(version=__version__, prog_name="postpress")
def cli():
    """Postpress static blog renderer."""


@cli.command()
@_source_option
@_destination_option
@_drafts_option
@_jobs_option
@_verbose_option
def build(source: Path, destination: Path | None, drafts: bool, jobs: int, verbose: bool):
    """Build the site into the destination directory."""
    configure_logging(verbose)
    from .build import build_site
    from .errors import BuildError

    try:
        result = build_site(source, destination=destination, include_drafts=drafts, jobs=jobs)
    except BuildError as exc:
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        click.echo(click.style(f"  File: {exc.source_path}", fg="yellow"), err=True)
        click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
        raise SystemExit(1) from None

    click.echo(f"Built {len(result.pages)} pages into {result.destination}")
    if result.failures:
        click.echo(
            click.style(f"{len(result.failures)} document(s) failed:", fg="red", bold=True),
            err=True,
        )
        for failure in result.failures:
            click.echo(click.style(f"  {failure.source_path}", fg="yellow"), err=True)
            click.echo(f"    {type(failure).__name__}: {failure.message}", err=True)
        raise SystemExit(1)


@cli.command()
@_source_option
@_destination_option
@_drafts_option
@_jobs_option
@_verbose_option
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind")
@click.option("--port", type=int, default=4000, show_default=True, help="Port to serve on")
@click.option("--no-watch", is_flag=True, help="Do not rebuild when sources change")
def serve(
    source: Path,
    destination: Path | None,
    drafts: bool,
    jobs: int,
    verbose: bool,
    host: str,
    port: int,
    no_watch: bool,
):
    """Build the site, serve it and rebuild on changes."""
    configure_logging(verbose)
    from .errors import BuildError
    from .server import PreviewServer

    try:
        server = PreviewServer(
            source, destination=destination, host=host, port=port,
            include_drafts=drafts, jobs=jobs,
        )
        server.start(watch=not no_watch)
    except BuildError as exc:
        raise click.ClickException(str(exc)) from None


def main():
    """Entry point for the CLI application."""
    cli()
