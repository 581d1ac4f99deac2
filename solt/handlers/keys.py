from collections import Counter
from typing import Optional

import click
import structlog

from solt.handlers.base import AppContext, CommandError, pass_app
from solt.services.redis_service import KeyInfo, KeyType, connect_store
from solt.utils.formatting import echo_rows, format_memory, format_ttl, warning
from solt.utils.functions import async_command, parse_range


logger = structlog.get_logger()


def key_row(info: KeyInfo) -> dict:
    return {
        "Key": info.key,
        "Type": info.key_type.value,
        "TTL": format_ttl(info.ttl),
        "Memory": format_memory(info.memory_usage),
        "Encoding": info.encoding,
    }


def print_found(keys, pattern: str) -> None:
    click.secho(f"Found {len(keys)} keys matching pattern '{pattern}'", fg="cyan", bold=True)


async def print_type_breakdown(store, keys) -> None:
    counts = Counter()
    for key in keys:
        counts[(await store.key_type(key)).value] += 1

    click.echo()
    click.secho("Breakdown by type:", bold=True)
    for key_type, count in sorted(counts.items()):
        click.echo(f"• {click.style(key_type, fg='cyan')}: {click.style(str(count), fg='yellow')}")


@click.command("keys")
@click.argument("pattern", default="*")
@click.option("--detailed", is_flag=True, help="Show detailed information")
@click.option("--count", "count_only", is_flag=True, help="Count keys only")
@pass_app
@async_command
async def keys_command(app: AppContext, pattern: str, detailed: bool, count_only: bool):
    """List and inspect Redis keys."""
    logger.info("Listing keys", pattern=pattern)
    async with connect_store(app.profile()) as store:
        keys = sorted(await store.list_keys_matching(pattern))
        print_found(keys, pattern)

        if not keys:
            warning("No keys found.")
            return

        if count_only:
            await print_type_breakdown(store, keys)
        elif detailed:
            rows = []
            with click.progressbar(keys, label="Getting key details", file=click.get_text_stream("stderr")) as bar:
                for key in bar:
                    rows.append(key_row(await store.key_info(key)))
            echo_rows(rows, app.output_format)
        else:
            for key in keys:
                click.echo("• " + click.style(key, fg="cyan"))


@click.command("search")
@click.argument("pattern")
@click.option("--count", "count_only", is_flag=True, help="Show count only")
@pass_app
@async_command
async def search_command(app: AppContext, pattern: str, count_only: bool):
    """Search keys by pattern."""
    async with connect_store(app.profile()) as store:
        keys = sorted(await store.list_keys_matching(pattern))

    if count_only:
        click.echo(str(len(keys)))
        return

    print_found(keys, pattern)
    for key in keys:
        click.echo("• " + click.style(key, fg="cyan"))


@click.command("inspect")
@click.argument("key")
@pass_app
@async_command
async def inspect_command(app: AppContext, key: str):
    """Inspect key details."""
    async with connect_store(app.profile()) as store:
        info = await store.key_info(key)
        if info.key_type == KeyType.NONE:
            raise CommandError(f"Key '{key}' not found")
        length = await store.length(key, info.key_type)

    click.secho(f"Key: {key}", bold=True)
    click.echo("Type: " + click.style(info.key_type.value, fg="cyan"))
    click.echo("TTL: " + format_ttl(info.ttl))
    click.echo("Memory: " + format_memory(info.memory_usage))
    click.echo("Encoding: " + info.encoding)
    if length is not None:
        click.echo(f"Length: {length}")


@click.command("filter")
@click.option("--pattern", default="*", show_default=True, help="Key pattern to match")
@click.option("--ttl", "ttl_range", help="Filter by TTL in seconds (format: min-max)")
@click.option("--size", "size_range", help="Filter by memory size in bytes (format: min-max)")
@click.option(
    "--type", "type_filter",
    type=click.Choice([t.value for t in KeyType if t not in (KeyType.NONE, KeyType.UNKNOWN)]),
    help="Filter by type"
)
@pass_app
@async_command
async def filter_command(
    app: AppContext,
    pattern: str,
    ttl_range: Optional[str],
    size_range: Optional[str],
    type_filter: Optional[str]
):
    """Filter keys by criteria."""
    ttl_bounds = parse_range(ttl_range, "--ttl") if ttl_range else None
    size_bounds = parse_range(size_range, "--size") if size_range else None

    rows = []
    async with connect_store(app.profile()) as store:
        for key in sorted(await store.list_keys_matching(pattern)):
            info = await store.key_info(key)
            if type_filter and info.key_type.value != type_filter:
                continue
            # Ключи без срока жизни (TTL -1) не попадают в фильтр по TTL
            if ttl_bounds and not (info.ttl is not None and ttl_bounds[0] <= info.ttl <= ttl_bounds[1]):
                continue
            if size_bounds and not (
                info.memory_usage is not None and size_bounds[0] <= info.memory_usage <= size_bounds[1]
            ):
                continue
            rows.append(key_row(info))

    click.secho(f"{len(rows)} keys matched", fg="cyan", bold=True)
    echo_rows(rows, app.output_format)
