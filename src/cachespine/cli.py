"""
CLI: ``cache-spine`` — inspect and edit a cache from the shell.

Works against the backend selected by ``CACHESPINE_*`` settings, overridable
per call with ``--backend`` and ``--dir``. Most useful with the file and
Redis backends; the memory backend only lives for one command.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.table import Table

from cachespine import __version__
from cachespine.cache import Cache
from cachespine.errors import CacheError, InvalidArgumentError
from cachespine.factory import create_cache
from cachespine.logging import configure_logging
from cachespine.settings import BackendKind, CacheSettings

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="cache-spine",
    help="cache-spine — key-value cache with pluggable backends.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Helpers ──────────────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"cache-spine {__version__}")
        raise typer.Exit()


def _settings(ctx: typer.Context) -> CacheSettings:
    return ctx.obj["settings"]


def _cache(ctx: typer.Context) -> Cache:
    return create_cache(_settings(ctx))


def _fail(exc: CacheError) -> NoReturn:
    code = 2 if isinstance(exc, InvalidArgumentError) else 1
    err_console.print(f"[bold red]Error[/bold red] ({exc.category.value}): {exc.message}")
    raise typer.Exit(code=code)


def _parse_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        return raw


# ── Root callback ────────────────────────────────────────────────────────


@app.callback()
def main(
    ctx: typer.Context,
    backend: BackendKind | None = typer.Option(None, "--backend", "-b", help="Override the configured backend."),
    directory: Path | None = typer.Option(None, "--dir", "-d", help="File backend directory."),
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """cache-spine CLI — get, set and clear cache entries."""
    overrides: dict[str, Any] = {}
    if backend is not None:
        overrides["backend"] = backend
    if directory is not None:
        overrides["directory"] = directory
    settings = CacheSettings(**overrides)
    configure_logging(level=settings.log_level, json_format=settings.log_format == "json")
    ctx.obj = {"settings": settings}


# ── Commands ─────────────────────────────────────────────────────────────


@app.command("get")
def get_command(ctx: typer.Context, key: str = typer.Argument(..., help="Cache key.")) -> None:
    """Print the value stored under KEY as JSON."""
    try:
        item = _cache(ctx).get_item(key)
    except CacheError as exc:
        _fail(exc)
    if not item.is_hit:
        err_console.print(f"[yellow]Miss:[/yellow] {key}")
        raise typer.Exit(code=1)
    console.print_json(json.dumps(item.get(), default=str))


@app.command("set")
def set_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Cache key."),
    value: str = typer.Argument(..., help="Value (JSON, or a plain string)."),
    ttl: int | None = typer.Option(None, "--ttl", "-t", help="Time to live in seconds."),
) -> None:
    """Store VALUE under KEY."""
    try:
        _cache(ctx).set(key, _parse_value(value), ttl=ttl)
    except CacheError as exc:
        _fail(exc)
    console.print(f"[green]✓[/green] Stored {key}")


@app.command("delete")
def delete_command(ctx: typer.Context, key: str = typer.Argument(..., help="Cache key.")) -> None:
    """Remove KEY (no error if absent)."""
    try:
        _cache(ctx).delete(key)
    except CacheError as exc:
        _fail(exc)
    console.print(f"[green]✓[/green] Deleted {key}")


@app.command("has")
def has_command(ctx: typer.Context, key: str = typer.Argument(..., help="Cache key.")) -> None:
    """Print whether KEY is cached and unexpired."""
    try:
        present = _cache(ctx).has(key)
    except CacheError as exc:
        _fail(exc)
    console.print("true" if present else "false")


@app.command("clear")
def clear_command(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Remove every entry of the configured backend."""
    if not yes:
        typer.confirm("Remove every cache entry?", abort=True)
    try:
        _cache(ctx).clear()
    except CacheError as exc:
        _fail(exc)
    console.print("[green]✓[/green] Cache cleared")


@app.command("info")
def info_command(ctx: typer.Context) -> None:
    """Show the effective settings and the number of stored entries."""
    settings = _settings(ctx)
    table = Table(title="cache-spine")
    table.add_column("Setting")
    table.add_column("Value")
    table.add_row("Backend", settings.backend.value)
    table.add_row("Serializer", settings.serializer.value)
    if settings.backend == BackendKind.FILE:
        table.add_row("Directory", str(settings.directory))
    if settings.backend == BackendKind.REDIS:
        table.add_row("Redis URL", settings.redis_url)
        table.add_row("Redis prefix", settings.redis_prefix)
    table.add_row("Default TTL", str(settings.default_ttl_seconds))

    try:
        table.add_row("Entries", str(_cache(ctx).backend.size()))
    except CacheError as exc:
        _fail(exc)
    console.print(table)


__all__ = ["app"]
