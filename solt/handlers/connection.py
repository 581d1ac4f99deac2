from typing import Optional

import click
import structlog

from solt.config import OutputFormat
from solt.handlers.base import AppContext, pass_app
from solt.services.redis_service import connect_store
from solt.services.registry import (
    FALLBACK_ENVIRONMENT,
    ConnectionProfile,
    ProfileOverrides,
    merge
)
from solt.utils.formatting import echo_rows, heading, success, warning
from solt.utils.functions import async_command


logger = structlog.get_logger()

INFO_FIELDS = (
    "redis_version",
    "os",
    "arch_bits",
    "process_id",
    "uptime_in_seconds",
    "uptime_in_days",
    "connected_clients",
    "used_memory_human",
    "used_memory_peak_human",
)


def connection_options(func):
    """Опции подключения, общие для connect и config --add-env"""
    options = [
        click.option("--host", help="Redis host"),
        click.option("--port", type=click.IntRange(1, 65535), help="Redis port"),
        click.option("--password", help="Redis password"),
        click.option("--db", type=click.IntRange(min=0), help="Redis database index"),
        click.option("--timeout", type=click.IntRange(min=1), help="Connection timeout in seconds"),
        click.option("--tls/--no-tls", default=None, help="Use TLS connection"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def overrides_from(host, port, password, db, timeout, tls) -> ProfileOverrides:
    return ProfileOverrides(host=host, port=port, password=password, db=db, timeout=timeout, tls=tls)


def print_profile(profile: ConnectionProfile) -> None:
    click.echo("Host: " + click.style(profile.host, fg="cyan"))
    click.echo("Port: " + click.style(str(profile.port), fg="cyan"))
    click.echo("Database: " + click.style(str(profile.db), fg="cyan"))
    click.echo("TLS: " + (click.style("Yes", fg="green") if profile.tls else click.style("No", fg="red")))


@click.command("connect")
@connection_options
@click.option("--test", is_flag=True, help="Test connection only")
@pass_app
@async_command
async def connect_command(
    app: AppContext,
    host: Optional[str],
    port: Optional[int],
    password: Optional[str],
    db: Optional[int],
    timeout: Optional[int],
    tls: Optional[bool],
    test: bool
):
    """Connect to Redis and test connection."""
    registry = app.config.registry

    if test:
        profile = app.profile()
        async with connect_store(profile) as store:
            await store.ping()
        success("Connection test successful!")
        return

    # Явные опции > сохраненное окружение > встроенный профиль
    name = app.environment or registry.default or FALLBACK_ENVIRONMENT
    stored = registry.get(name)
    profile = merge(
        overrides_from(host, port, password, db, timeout, tls),
        stored or ConnectionProfile.builtin(name)
    )
    logger.info("Connecting", environment=name, url=profile.display_url)

    click.secho("Connecting to Redis...", fg="yellow")
    print_profile(profile)

    async with connect_store(profile) as store:
        success("Connected successfully!")
        pong = await store.ping()
        click.echo("Ping: " + click.style("PONG" if pong is True else str(pong), fg="green"))

        info = await store.info()
        click.echo()
        heading("Redis Server Information:")
        for key in INFO_FIELDS:
            if key in info:
                click.echo(f"{click.style(key, fg='cyan')}: {click.style(str(info[key]), fg='yellow')}")

    if stored is None:
        registry.add(profile)
        registry.set_default(name)
        app.save()
        success(f"Environment '{name}' saved to config")


def environment_rows(app: AppContext):
    registry = app.config.registry
    return [
        {
            "Name": name,
            "Host": profile.host,
            "Port": profile.port,
            "Database": profile.db,
            "TLS": "Yes" if profile.tls else "No",
            "Default": "✓" if name == registry.default else "",
        }
        for name, profile in sorted(registry.profiles.items())
    ]


def show_config(app: AppContext) -> None:
    config = app.config
    heading("Current Configuration:")
    if config.registry.default:
        click.echo("Default Environment: " + click.style(config.registry.default, fg="cyan", bold=True))
    click.echo("Output Format: " + click.style(config.output_format.value, fg="cyan"))
    click.echo("History Size: " + click.style(str(config.history_size), fg="cyan"))
    click.echo(f"Config File: {app.settings.config_path}")

    click.echo()
    heading("Environments:")
    echo_rows(environment_rows(app), config.output_format)

    if config.favorites:
        click.echo()
        heading("Favorites:")
        for favorite in config.favorites:
            click.echo("• " + click.style(favorite, fg="cyan"))


@click.command("config")
@click.option("--show", is_flag=True, help="Show current configuration")
@click.option("--add-env", metavar="NAME", help="Add new environment (uses the connection options)")
@click.option("--remove-env", metavar="NAME", help="Remove environment")
@click.option("--set-default", metavar="NAME", help="Set default environment")
@click.option(
    "--output-format",
    type=click.Choice([f.value for f in OutputFormat]),
    help="Set output format"
)
@click.option("--history-size", type=click.IntRange(min=0), help="Set history size")
@connection_options
@pass_app
def config_command(
    app: AppContext,
    show: bool,
    add_env: Optional[str],
    remove_env: Optional[str],
    set_default: Optional[str],
    output_format: Optional[str],
    history_size: Optional[int],
    host, port, password, db, timeout, tls
):
    """Manage configurations and environments."""
    registry = app.config.registry

    if add_env:
        overrides = overrides_from(host, port, password, db, timeout, tls)
        if overrides.timeout is None:
            overrides.timeout = 30
        profile = merge(overrides, ConnectionProfile.builtin(add_env))
        registry.add(profile)
        app.save()
        logger.info("Environment added", environment=add_env, url=profile.display_url)
        success(f"Environment '{add_env}' added successfully!")
    elif remove_env:
        if registry.remove(remove_env):
            app.save()
            logger.info("Environment removed", environment=remove_env)
            success(f"Environment '{remove_env}' removed successfully!")
        else:
            warning(f"Environment '{remove_env}' not found!")
    elif set_default:
        registry.set_default(set_default)
        app.save()
        success(f"Default environment set to '{set_default}'")
    elif output_format:
        app.config.output_format = OutputFormat(output_format)
        app.save()
        success(f"Output format set to {output_format}")
    elif history_size is not None:
        app.config.history_size = history_size
        app.save()
        success(f"History size set to {history_size}")
    else:
        show_config(app)
