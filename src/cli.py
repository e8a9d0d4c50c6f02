"""CLI interface for bookmark-triage."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from bookmark_triage.config import BookmarksConfig, Settings, load_bookmarks_config, load_settings
from bookmark_triage.errors import BookmarkTriageError
from bookmark_triage.pipeline import build_pipeline, format_category_counts
from bookmark_triage.state import load_state

app = typer.Typer(
    name="bookmark-triage",
    help="Classify bookmarked posts and route them to notes, tasks and notifications.",
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from bookmark_triage import __version__

        console.print(f"bookmark-triage {__version__}")
        raise typer.Exit()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def _fail(exc: Exception) -> None:
    console.print(f"[red]Error:[/red] {exc}")
    raise typer.Exit(1)


def _load(ctx: typer.Context) -> tuple[Settings, BookmarksConfig]:
    settings: Settings = ctx.obj
    try:
        config = load_bookmarks_config(settings.config_path)
    except BookmarkTriageError as exc:
        _fail(exc)
    return settings, config


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Optional[Path], typer.Option("--config", help="Path to the YAML category/routing config.")
    ] = None,
    state_path: Annotated[
        Optional[Path], typer.Option("--state", help="Path to the state file.")
    ] = None,
    vault_dir: Annotated[
        Optional[Path], typer.Option("--vault", help="Path to the Obsidian vault.")
    ] = None,
    prompts_dir: Annotated[
        Optional[Path], typer.Option("--prompts", help="Directory for generated task prompts.")
    ] = None,
    bird_bin: Annotated[Optional[str], typer.Option("--bird", help="Path to bird binary.")] = None,
    summarize_bin: Annotated[
        Optional[str], typer.Option("--summarize", help="Path to summarize binary.")
    ] = None,
    classifier_bin: Annotated[
        Optional[str], typer.Option("--gemini", help="Path to gemini binary.")
    ] = None,
    classifier_backend: Annotated[
        Optional[str],
        typer.Option("--classifier", help="Classifier model: gemini, claude, anthropic or none."),
    ] = None,
    quiet_start: Annotated[
        Optional[str], typer.Option("--quiet-start", help="Quiet hours start (HH:MM).")
    ] = None,
    quiet_end: Annotated[
        Optional[str], typer.Option("--quiet-end", help="Quiet hours end (HH:MM).")
    ] = None,
    limit: Annotated[Optional[int], typer.Option("--limit", help="Bookmarks fetch limit.")] = None,
    parallel: Annotated[
        Optional[bool],
        typer.Option("--parallel/--sequential", help="Process bookmarks in parallel."),
    ] = None,
    workers: Annotated[
        Optional[int], typer.Option("--workers", help="Number of parallel workers.")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", help="Enable debug logging.")] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Process bookmarks (default) or show status."""
    _setup_logging(verbose)
    try:
        ctx.obj = load_settings(
            config_path=str(config_path) if config_path else None,
            state_path=str(state_path) if state_path else None,
            vault_dir=str(vault_dir) if vault_dir else None,
            prompts_dir=str(prompts_dir) if prompts_dir else None,
            bird_bin=bird_bin,
            summarize_bin=summarize_bin,
            classifier_bin=classifier_bin,
            classifier_backend=classifier_backend,
            quiet_start=quiet_start,
            quiet_end=quiet_end,
            limit=limit,
            parallel=parallel,
            workers=workers,
        )
    except BookmarkTriageError as exc:
        _fail(exc)

    if ctx.invoked_subcommand is None:
        _process(ctx, force=False)


def _process(ctx: typer.Context, *, force: bool) -> None:
    settings, config = _load(ctx)
    order = config.category_order()
    try:
        pipeline = build_pipeline(settings, config)
        state = pipeline.load_state()
        console.print(f"Processed so far: {len(state.processed_ids)} bookmarks")
        console.print(f"Categories: {format_category_counts(order, state.categories)}")

        processed = pipeline.run(force=force, state=state)
    except BookmarkTriageError as exc:
        _fail(exc)

    console.print(f"[green]Processed {processed} new bookmarks[/green]")
    console.print(f"Updated categories: {format_category_counts(order, state.categories)}")
    if pipeline.report.has_errors:
        console.print(f"[yellow]{len(pipeline.report.errors)} bookmark(s) failed[/yellow]")


@app.command(name="process")
def process_cmd(
    ctx: typer.Context,
    force: Annotated[
        bool, typer.Option("--force", help="Reprocess all bookmarks (dangerous).")
    ] = False,
) -> None:
    """Process new bookmarks."""
    _process(ctx, force=force)


@app.command(name="status")
def status_cmd(ctx: typer.Context) -> None:
    """Show processing stats."""
    settings, config = _load(ctx)
    order = config.category_order()
    try:
        state = load_state(settings.state_path, order)
    except BookmarkTriageError as exc:
        _fail(exc)

    console.print(f"Processed: {len(state.processed_ids)} bookmarks")
    console.print(f"Last processed: {state.last_processed or 'never'}")
    console.print(f"Categories: {format_category_counts(order, state.categories)}")


if __name__ == "__main__":
    app()
