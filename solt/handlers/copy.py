import json
from typing import Optional

import click
import structlog

from solt.config import OutputFormat
from solt.handlers.base import AppContext, not_implemented, pass_app
from solt.services.migrator import CopyReport, CopyStatus, migrate
from solt.utils.functions import async_command


logger = structlog.get_logger()

STATUS_COLORS = {
    CopyStatus.COPIED: "green",
    CopyStatus.SKIPPED_NOT_FOUND: "yellow",
    CopyStatus.SKIPPED_WRONG_TYPE: "yellow",
    CopyStatus.FAILED: "red",
}


def report_to_dict(report: CopyReport) -> dict:
    return {
        "pattern": report.pattern,
        "attempted": report.attempted,
        "copied": report.copied,
        "outcomes": [
            {
                "source_key": o.source_key,
                "destination_key": o.destination_key,
                "status": o.status.value,
                "reason": o.reason,
            }
            for o in report.outcomes
        ],
    }


def print_report(report: CopyReport) -> None:
    if report.attempted == 0:
        click.secho("No keys found matching the pattern.", fg="yellow")
        return

    click.secho(f"Found {report.attempted} keys to copy", fg="green")
    for outcome in report.outcomes:
        color = STATUS_COLORS[outcome.status]
        if outcome.status == CopyStatus.COPIED:
            text = f"Copied '{outcome.source_key}' -> '{outcome.destination_key}'"
        elif outcome.status == CopyStatus.FAILED:
            text = f"Error copying '{outcome.source_key}': {outcome.reason}"
        else:
            text = f"Skipped '{outcome.source_key}': {outcome.reason}"
        click.secho(text, fg=color)

    click.secho(
        f"Copy operation completed. {report.copied} of {report.attempted} keys copied.",
        fg="green" if not report.problems else "yellow",
        bold=True
    )


@click.command("copy")
@click.argument("pattern")
@click.option("--prefix", help="Destination key prefix (required within one environment)")
@click.option("--source-env", help="Source environment")
@click.option("--dest-env", help="Destination environment")
@pass_app
@async_command
async def copy_command(
    app: AppContext,
    pattern: str,
    prefix: Optional[str],
    source_env: Optional[str],
    dest_env: Optional[str]
):
    """Copy string keys within an environment or between environments."""
    registry = app.config.registry
    source_env = source_env or app.environment
    source = registry.resolve(source_env)
    destination = registry.resolve(dest_env) if dest_env else source

    if destination == source and not prefix:
        prefix = click.prompt("Enter destination prefix (e.g., 'backup:')", err=True).strip()
        if not prefix:
            raise click.BadParameter("a prefix is required within one environment", param_hint="--prefix")

    if destination == source:
        click.secho(f"Copying keys matching '{pattern}' to '{prefix}*'", fg="cyan", err=True)
    else:
        click.secho(
            f"Copying from '{source.name}' to '{destination.name}' with pattern '{pattern}'",
            fg="cyan",
            err=True
        )

    logger.info(
        "Copy requested",
        pattern=pattern,
        source=source.name,
        destination=destination.name,
        prefix=prefix or ""
    )
    report = await migrate(registry, pattern, source_env, dest_env, prefix or "")

    if app.output_format == OutputFormat.JSON:
        click.echo(json.dumps(report_to_dict(report), indent=2, ensure_ascii=False))
    else:
        print_report(report)


@click.command("bulk")
@click.argument("operation", type=click.Choice(["delete", "rename", "copy", "dump"]))
@click.argument("pattern")
@click.option("--confirm", is_flag=True, help="Confirm operation")
def bulk_command(operation: str, pattern: str, confirm: bool):
    """Perform bulk operations."""
    not_implemented("bulk")
