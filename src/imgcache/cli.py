"""Click CLI for imgcache — inspect and maintain a content-addressed image cache."""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import ExitStack
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from imgcache.config.hierarchy import load_settings
from imgcache.config.schema import CacheSettings
from imgcache.errors.exceptions import ConfigError, ImageCacheError

if TYPE_CHECKING:
    from imgcache.cache.store import ImageStore

console = Console()
error_console = Console(stderr=True)


def _setup_logging(verbosity: int) -> None:
    """Configure logging based on verbosity level."""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_time=False, show_path=False)],
    )


def _open_store(settings: CacheSettings) -> ImageStore:
    from imgcache.cache.store import ImageStore

    return ImageStore.from_config(settings)


@click.group()
@click.version_option(package_name="imgcache")
@click.option(
    "--cache-dir", type=click.Path(file_okay=False), default=None, help="Cache directory."
)
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug).")
@click.pass_context
def cli(ctx: click.Context, cache_dir: str | None, verbose: int) -> None:
    """imgcache — content-addressed image cache."""
    _setup_logging(verbose)
    try:
        ctx.obj = load_settings(cache_dir=cache_dir)
    except ConfigError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@cli.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--content-type", type=str, default=None, help="MIME type for every file.")
@click.option("--workers", type=int, default=5, show_default=True, help="Concurrent ingestions.")
@click.pass_obj
def put(
    settings: CacheSettings,
    files: tuple[str, ...],
    content_type: str | None,
    workers: int,
) -> None:
    """Cache image file(s) and print their references."""
    from imgcache.cache.layout import content_type_for
    from imgcache.concurrency.pool import IngestPool

    store = _open_store(settings)
    paths = [Path(f) for f in files]

    async def _run() -> list[str | None]:
        with ExitStack() as stack:
            items = [
                (
                    stack.enter_context(open(p, "rb")),
                    content_type or content_type_for(p.suffix),
                    p.name,
                )
                for p in paths
            ]
            return await IngestPool(store, max_workers=workers).ingest_batch(items)

    try:
        results = asyncio.run(_run())
    finally:
        store.close()

    failed = 0
    for path, reference in zip(paths, results, strict=True):
        if reference is None:
            failed += 1
            error_console.print(f"[red]Failed:[/red] {path}")
        else:
            click.echo(f"{path.name}\t{reference}")
    if failed:
        sys.exit(1)


@cli.command()
@click.argument("identifier")
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Output file path.")
@click.pass_obj
def get(settings: CacheSettings, identifier: str, output: str | None) -> None:
    """Fetch an image by id or reference."""
    store = _open_store(settings)
    try:
        cached = asyncio.run(store.get(identifier))
    except ImageCacheError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    finally:
        store.close()

    if cached is None:
        error_console.print(f"[yellow]Not found:[/yellow] {identifier}")
        sys.exit(1)

    if output:
        Path(output).write_bytes(cached.data)
        console.print(f"[green]Written to {output}[/green] ({cached.content_type})")
    else:
        click.get_binary_stream("stdout").write(cached.data)


@cli.command()
@click.argument("identifier")
@click.pass_obj
def delete(settings: CacheSettings, identifier: str) -> None:
    """Remove an image. Succeeds even if it was not cached."""
    store = _open_store(settings)
    try:
        removed = asyncio.run(store.delete(identifier))
    finally:
        store.close()
    console.print("[green]Removed.[/green]" if removed else "Nothing to remove.")


@cli.command()
@click.option("--max-age-hours", type=float, default=None, help="Evict images older than this.")
@click.pass_obj
def cleanup(settings: CacheSettings, max_age_hours: float | None) -> None:
    """Run one eviction cycle and print the report."""
    max_age = timedelta(hours=max_age_hours) if max_age_hours is not None else settings.max_age
    store = _open_store(settings)
    try:
        report = asyncio.run(store.cleanup(max_age))
    finally:
        store.close()

    table = Table(title="Cleanup Report", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")
    table.add_row("Expired images removed", str(report.expired_removed))
    table.add_row("Temporary files removed", str(report.temp_files_removed))
    table.add_row("Failures", str(report.failures))
    if report.error:
        table.add_row("Error", f"[red]{report.error}[/red]")
    console.print(table)


@cli.command()
@click.pass_obj
def stats(settings: CacheSettings) -> None:
    """Show cache statistics."""
    store = _open_store(settings)
    try:
        result = store.stats()
    finally:
        store.close()

    table = Table(title="Cache Statistics", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")
    table.add_row("Directory", str(settings.cache_dir))
    table.add_row("Entries", str(result.entries))
    table.add_row("Size (MB)", f"{result.size_mb:.1f}")
    for content_type, count in sorted(result.content_types.items()):
        table.add_row(f"  {content_type}", str(count))

    console.print(table)


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", type=int, default=8000, show_default=True)
@click.pass_obj
def serve(settings: CacheSettings, host: str, port: int) -> None:
    """Serve the image endpoints over HTTP."""
    import uvicorn

    from imgcache.api import create_app

    uvicorn.run(create_app(settings), host=host, port=port, log_level=settings.log_level.lower())


def main() -> None:
    """Entry point for the CLI."""
    cli()
