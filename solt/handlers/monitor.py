import time
from dataclasses import asdict
from datetime import datetime

import click
import structlog

from solt.handlers.base import AppContext, pass_app
from solt.services.redis_service import connect_store
from solt.utils.formatting import echo_rows, format_ago, heading, warning
from solt.utils.functions import async_command


logger = structlog.get_logger()


async def stream_commands(store) -> None:
    click.secho("Starting Redis MONITOR...", fg="yellow", bold=True)
    click.secho("Press Ctrl+C to stop", fg="cyan")
    click.echo("=" * 80)
    async for command in store.monitor():
        stamp = datetime.fromtimestamp(command.get("time", time.time())).strftime("%H:%M:%S.%f")[:-3]
        source = f"{command.get('db', '?')} {command.get('client_address', '')}:{command.get('client_port', '')}"
        click.echo(f"{click.style(stamp, fg='yellow')} [{source}] {command.get('command', '')}")


async def print_slowlog(store, count: int) -> None:
    entries = await store.slowlog_get(count)
    if not entries:
        warning("No slow log entries found")
        return

    heading(f"Slow Log Entries (showing {len(entries)}):", width=80)
    now = int(time.time())
    for entry in entries:
        click.secho(f"ID: {entry.id}", fg="cyan")
        click.echo("  Time: " + click.style(format_ago(max(now - entry.timestamp, 0)), fg="yellow"))
        click.echo("  Duration: " + click.style(f"{entry.duration}µs", fg="red"))
        click.echo(f"  Command: {entry.command}")
        click.echo("-" * 40)


@click.command("monitor")
@click.option("--slowlog", is_flag=True, help="Show slow log entries")
@click.option("--slowlog-count", type=click.IntRange(min=1), default=10, show_default=True,
              help="Number of slow log entries to show")
@click.option("--clients", is_flag=True, help="Show client list")
@pass_app
@async_command
async def monitor_command(app: AppContext, slowlog: bool, slowlog_count: int, clients: bool):
    """Monitor Redis in real-time."""
    async with connect_store(app.profile()) as store:
        if slowlog:
            await print_slowlog(store, slowlog_count)
        elif clients:
            client_list = await store.client_list()
            if not client_list:
                warning("No clients found")
                return
            heading(f"Connected Clients ({len(client_list)}):", width=80)
            echo_rows([asdict(c) for c in client_list], app.output_format)
        else:
            logger.info("Starting monitor", environment=app.profile().name)
            await stream_commands(store)


@click.command("stats")
@click.option("--memory", is_flag=True, help="Show memory stats")
@click.option("--commands", is_flag=True, help="Show command stats")
@click.option("--replication", is_flag=True, help="Show replication stats")
@pass_app
@async_command
async def stats_command(app: AppContext, memory: bool, commands: bool, replication: bool):
    """Get Redis statistics."""
    sections = [
        name for name, wanted in (
            ("memory", memory),
            ("commandstats", commands),
            ("replication", replication),
        ) if wanted
    ] or ["server", "clients", "memory", "stats"]

    async with connect_store(app.profile()) as store:
        for section in sections:
            info = await store.info(section)
            heading(f"{section.capitalize()}:")
            rows = [{"Field": k, "Value": v} for k, v in info.items()]
            echo_rows(rows, app.output_format)
            click.echo()
