"""Command-line interface for prismblog.

This module defines the CLI commands using the Click framework.

Commands:
- generate: Regenerate the static site and publish it to the deploy repository.
- serve: Run the live server rendering pages straight from the CMS.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from pathlib import Path

import click

from . import __version__
from .config import load_config
from .errors import PrismblogError


@click.group()
@click.version_option(version=__version__, prog_name="prismblog")
@click.option("--verbose", "-v", is_flag=True, help="Log debug messages")
def cli(verbose: bool):
    """Prismic-backed blog: live server and static site publisher."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option(
    "--project",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Project root (defaults to the current directory)",
)
def generate(project: Path | None):
    """Regenerate the static site and push it to the deploy repository."""
    project_root = (project or Path.cwd()).resolve()
    from .generate import generate_site

    settings = _load_settings(project_root)
    try:
        result = asyncio.run(generate_site(settings))
    except PrismblogError as exc:
        click.echo(click.style("Generation failed:", fg="red", bold=True), err=True)
        click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
        raise SystemExit(1) from None

    for failure in result.failures:
        click.echo(
            click.style(f"  Failed {failure.kind} {failure.name}: {failure.error}", fg="yellow"),
            err=True,
        )
    if result.failures:
        click.echo(click.style("Site not published: some pages failed.", fg="red", bold=True), err=True)
        raise SystemExit(1)

    outcome = result.outcome
    if outcome is not None and not outcome.changed:
        click.echo(f"Generated {len(result.pages)} pages; no changes to publish.")
    elif outcome is not None and not outcome.pushed:
        click.echo(click.style("Committed locally but the push failed.", fg="red", bold=True), err=True)
        raise SystemExit(1)
    else:
        click.echo(f"Published {len(result.pages)} pages from {settings.output_dir}")


@cli.command()
@click.option(
    "--port",
    type=int,
    required=False,
    help="Port to run the live server (overrides prismblog.yaml and PORT)",
)
def serve(port: int | None):
    """Run the live server."""
    project_root = Path.cwd()
    from .server import serve as run_server

    settings = _load_settings(project_root)
    if port is not None:
        settings = replace(settings, port=port)
    run_server(settings)


def _load_settings(project_root: Path):
    try:
        return load_config(project_root)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc


def main():
    """Entry point for the CLI application."""
    cli()
