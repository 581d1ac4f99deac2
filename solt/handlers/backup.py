from pathlib import Path
from typing import Optional

import click
import structlog

from solt.handlers.base import AppContext, pass_app
from solt.services.redis_service import connect_store
from solt.utils.export import collect_rows, export_rows
from solt.utils.formatting import success, warning
from solt.utils.functions import async_command


logger = structlog.get_logger()

BACKUP_OPERATIONS = {
    "1": "save",
    "2": "bgsave",
    "3": "bgrewriteaof",
}


def choose_operation() -> str:
    click.secho("Choose backup operation:", fg="cyan")
    click.secho("1. SAVE (synchronous save, blocks Redis)", fg="yellow")
    click.secho("2. BGSAVE (background save, non-blocking)", fg="yellow")
    click.secho("3. BGREWRITEAOF (background AOF rewrite)", fg="yellow")
    choice = click.prompt("Enter choice", type=click.Choice(list(BACKUP_OPERATIONS)))
    return BACKUP_OPERATIONS[choice]


@click.command("backup")
@click.option("--save", "operation", flag_value="save", help="Trigger SAVE")
@click.option("--bgsave", "operation", flag_value="bgsave", help="Trigger BGSAVE")
@click.option("--bgrewriteaof", "operation", flag_value="bgrewriteaof", help="Trigger AOF rewrite")
@pass_app
@async_command
async def backup_command(app: AppContext, operation: Optional[str]):
    """Backup Redis data."""
    operation = operation or choose_operation()
    logger.info("Backup requested", operation=operation)

    async with connect_store(app.profile()) as store:
        click.secho(f"Running {operation.upper()}...", fg="cyan")
        if operation == "save":
            await store.save(background=False)
            success("SAVE completed successfully.")
        elif operation == "bgsave":
            await store.save(background=True)
            success("BGSAVE triggered successfully.")
        else:
            await store.bgrewriteaof()
            success("BGREWRITEAOF triggered successfully.")


@click.command("export")
@click.argument("export_format", metavar="FORMAT", type=click.Choice(["json", "csv", "xlsx"]))
@click.argument("pattern", default="*")
@click.option("-o", "--output", required=True, type=click.Path(dir_okay=False, path_type=Path),
              help="Output file")
@pass_app
@async_command
async def export_command(app: AppContext, export_format: str, pattern: str, output: Path):
    """Export Redis data."""
    async with connect_store(app.profile()) as store:
        rows = await collect_rows(store, pattern)

    if not rows:
        warning(f"No keys found matching pattern '{pattern}'")
        return

    path = export_rows(rows, export_format, output)
    success(f"Exported {len(rows)} keys to {path}")
