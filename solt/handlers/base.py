from dataclasses import dataclass
from typing import Optional

import click
import structlog

from solt import __description__, __version__
from solt.config import AppConfig, OutputFormat, Settings, save_config
from solt.services.registry import ConnectionProfile


logger = structlog.get_logger()


@dataclass
class AppContext:
    """Состояние одного запуска CLI: настройки, конфигурация и выбранное окружение"""
    settings: Settings
    config: AppConfig
    environment: Optional[str] = None
    verbose: bool = False

    @property
    def output_format(self) -> OutputFormat:
        return self.config.output_format

    def profile(self, name: Optional[str] = None) -> ConnectionProfile:
        return self.config.registry.resolve(name or self.environment)

    def save(self) -> None:
        save_config(self.config, self.settings.config_path)


pass_app = click.make_pass_decorator(AppContext)


class CommandError(click.ClickException):
    """Фатальная ошибка команды: сообщение красным цветом и код выхода 1"""

    def show(self, file=None) -> None:
        click.secho(f"Error: {self.format_message()}", fg="red", bold=True, err=True)


def not_implemented(name: str) -> None:
    logger.info("Placeholder command invoked", command=name)
    click.secho(f"{name.capitalize()} command - not yet implemented", fg="yellow")


def print_welcome() -> None:
    click.secho("Welcome to Solt - Redis CLI Management Tool!", bold=True)
    click.echo("=" * 50)
    click.echo("Use --help to see available commands.")
    click.echo()
    click.secho("Quick Start:", bold=True)
    click.echo("  solt connect                    # Connect to Redis")
    click.echo("  solt keys                       # List all keys")
    click.echo("  solt get <key>                  # Get a value")
    click.echo("  solt set <key> <value>          # Set a value")
    click.echo("  solt monitor                    # Monitor Redis in real-time")
    click.echo()
    click.secho("Environment Usage:", bold=True)
    click.echo("  solt -e dev keys                # Use dev environment")
    click.echo("  solt -e staging keys            # Use staging environment")
    click.echo("  solt -e prod keys               # Use production environment")
    click.echo()
    click.secho("For more information, run: solt --help", fg="cyan")


@click.command("version")
def version_command():
    """Show version information."""
    click.secho("Solt", fg="blue", bold=True)
    click.echo(f"Version: {__version__}")
    click.echo(f"Description: {__description__}")


@click.command("debug")
@click.argument("command")
def debug_command(command: str):
    """Debug Redis operations."""
    not_implemented("debug")
