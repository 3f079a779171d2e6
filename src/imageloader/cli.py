"""Typer-based CLI entry point."""

from __future__ import annotations

import functools
import logging
import threading
from pathlib import Path
from typing import Any, List, Optional

import typer
from rich import print
from rich.console import Console
from rich.table import Table

from .appctx import LoaderContext
from .core.cache_key import hash_key_for_disk, is_available
from .errors import DiskIOFailure, ImageLoaderError, SettingsError
from .events.loader_events import ImageLoadedEvent, ImageLoadFailedEvent
from .settings.manager import SettingsManager

app = typer.Typer(help="Two-tier image cache in front of HTTP image URLs")

_SETTINGS_OPTION = typer.Option(None, "--settings", "-s", help="Path to settings.json")
_VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Enable debug logging")


def _handle_errors(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SettingsError as exc:
            typer.echo(f"Settings error: {exc}", err=True)
            raise typer.Exit(2) from exc
        except ImageLoaderError as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(1) from exc

    return wrapper


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_settings(path: Optional[Path]) -> dict[str, Any]:
    manager = SettingsManager(path)
    manager.load()
    return manager.snapshot()


def _require_disk(ctx: LoaderContext):
    if ctx.disk is None:
        raise DiskIOFailure("disk cache is disabled or unavailable")
    return ctx.disk


@app.command()
@_handle_errors
def fetch(
    urls: List[str] = typer.Argument(..., help="Image URLs to resolve"),
    settings: Optional[Path] = _SETTINGS_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Resolve URLs through the cache tiers, warming memory and disk."""

    _configure_logging(verbose)
    with LoaderContext.create(_load_settings(settings)) as ctx:
        sources: dict[str, str] = {}
        failures: dict[str, str] = {}
        results: dict[str, Any] = {}
        lock = threading.Lock()
        done = threading.Event()
        remaining = len(set(urls))

        def _on_loaded(event: ImageLoadedEvent) -> None:
            with lock:
                sources[event.url] = event.source

        def _on_failed(event: ImageLoadFailedEvent) -> None:
            with lock:
                failures[event.url] = event.reason

        def _on_result(url: str, image: Any) -> None:
            nonlocal remaining
            with lock:
                if url in results:
                    return
                results[url] = image
                remaining -= 1
                if remaining == 0:
                    done.set()

        ctx.events.subscribe(ImageLoadedEvent, _on_loaded)
        ctx.events.subscribe(ImageLoadFailedEvent, _on_failed)
        for url in dict.fromkeys(urls):
            ctx.loader.load(url, _on_result)
        done.wait()

        table = Table(title="Fetch results")
        table.add_column("URL", overflow="fold")
        table.add_column("Source")
        table.add_column("Image")
        for url in dict.fromkeys(urls):
            image = results.get(url)
            if image is None:
                table.add_row(url, "-", f"[red]failed[/red] ({failures.get(url, 'unknown')})")
            else:
                source = sources.get(url, "memory")
                table.add_row(url, source, f"{image.width}x{image.height} {image.mode}")
        Console().print(table)

        if any(results.get(url) is None for url in urls):
            raise typer.Exit(1)


@app.command()
@_handle_errors
def key(
    url: str = typer.Argument(..., help="Image URL"),
    settings: Optional[Path] = _SETTINGS_OPTION,
) -> None:
    """Print the disk-tier key for URL."""

    config = _load_settings(settings)
    algorithm = config["hashing"]["algorithm"]
    if not is_available(algorithm):
        typer.echo(
            f"Warning: hash algorithm {algorithm!r} is unavailable; using the weak string key",
            err=True,
        )
    typer.echo(hash_key_for_disk(url, algorithm))


@app.command()
@_handle_errors
def stats(
    settings: Optional[Path] = _SETTINGS_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Show the disk tier's location, entry count and size."""

    _configure_logging(verbose)
    with LoaderContext.create(_load_settings(settings)) as ctx:
        disk = _require_disk(ctx)
        print(f"[bold]Directory:[/bold] {disk.directory}")
        print(f"[bold]Entries:[/bold] {len(disk)}")
        print(f"[bold]Size:[/bold] {disk.size()} / {disk.max_size} bytes")


@app.command()
@_handle_errors
def clear(
    settings: Optional[Path] = _SETTINGS_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Remove every entry from the disk tier."""

    _configure_logging(verbose)
    with LoaderContext.create(_load_settings(settings)) as ctx:
        removed = _require_disk(ctx).clear()
        print(f"Removed {removed} stored values")


def main() -> None:  # pragma: no cover - thin wrapper
    app()


if __name__ == "__main__":  # pragma: no cover - CLI entry
    main()
