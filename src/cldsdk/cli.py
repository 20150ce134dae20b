"""
cldsdk CLI.

Usage:
    cldsdk url sample.jpg -o width=100 -o crop=fill
    cldsdk sign public_id=sample timestamp=1315060510
    cldsdk upload movie.mp4 --chunk-size 6000000 -o resource_type=video

Credentials come from CLOUDINARY_URL or CLOUDINARY_* variables.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from cldsdk.exceptions import CldError

console = Console()
err_console = Console(stderr=True)


def parse_pairs(pairs: tuple[str, ...]) -> dict[str, Any]:
    """
    Parse ``key=value`` arguments.

    Values are read as JSON when possible (``100``, ``true``,
    ``{"width": 10}``) and kept as strings otherwise.
    """
    options: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got '{pair}'")
        try:
            options[key] = json.loads(raw)
        except ValueError:
            options[key] = raw
    return options


def _fail(error: CldError) -> None:
    err_console.print(f"[red]Error:[/red] {error.message}")
    raise SystemExit(1)


@click.group()
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, ...)")
@click.version_option(package_name="cldsdk")
def main(log_level: str | None) -> None:
    """cldsdk command-line interface."""
    if log_level:
        from cldsdk.logging import setup_logging

        setup_logging(level=log_level.upper(), force=True)


# =============================================================================
# URL Command
# =============================================================================


@main.command()
@click.argument("public_id")
@click.option("--option", "-o", "pairs", multiple=True, help="Option as key=value")
def url(public_id: str, pairs: tuple[str, ...]) -> None:
    """Build a delivery URL.

    Examples:

        cldsdk url sample.jpg -o width=100 -o height=150 -o crop=fill

        cldsdk url dog.mp4 -o resource_type=video -o start_offset=auto
    """
    from cldsdk.url import cloudinary_url

    try:
        result, remaining = cloudinary_url(public_id, parse_pairs(pairs))
    except CldError as e:
        _fail(e)
        return
    click.echo(result)
    for key, value in remaining.items():
        err_console.print(f"[dim]{key}[/dim] = {value}")


# =============================================================================
# Sign Command
# =============================================================================


@main.command()
@click.argument("pairs", nargs=-1, required=True)
def sign(pairs: tuple[str, ...]) -> None:
    """Sign API parameters with the configured secret.

    Examples:

        cldsdk sign public_id=sample timestamp=1315060510
    """
    from cldsdk.signing import sign_request

    try:
        signed = sign_request(parse_pairs(pairs))
    except CldError as e:
        _fail(e)
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Param")
    table.add_column("Value")
    for key, value in signed.items():
        table.add_row(key, str(value))
    console.print(table)


# =============================================================================
# Upload Command
# =============================================================================


@main.command()
@click.argument("file")
@click.option("--chunk-size", type=int, default=None, help="Upload in parts of N bytes")
@click.option("--option", "-o", "pairs", multiple=True, help="Upload option as key=value")
def upload(file: str, chunk_size: int | None, pairs: tuple[str, ...]) -> None:
    """Upload a local file or a remote URL.

    With --chunk-size the file is sent in parts of at least 5MiB.

    Examples:

        cldsdk upload logo.png -o public_id=brand/logo

        cldsdk upload movie.mp4 --chunk-size 6000000 -o resource_type=video
    """
    options = parse_pairs(pairs)
    try:
        result = asyncio.run(_upload_async(file, chunk_size, options))
    except CldError as e:
        _fail(e)
        return

    table = Table(show_header=False)
    table.add_column("Field", style="dim")
    table.add_column("Value")
    for key in ("public_id", "version", "resource_type", "format", "bytes", "etag", "secure_url"):
        value = getattr(result, key, None)
        if value is not None:
            table.add_row(key, str(value))
    console.print(table)


async def _upload_async(file: str, chunk_size: int | None, options: dict[str, Any]):
    """Async upload implementation."""
    from cldsdk.uploader import AsyncUploader

    uploader = AsyncUploader()
    if chunk_size:
        return await uploader.upload_large(file, chunk_size=chunk_size, **options)
    return await uploader.upload(file, **options)


if __name__ == "__main__":
    main()
