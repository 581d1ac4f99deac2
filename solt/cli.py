from typing import Optional

import click
import redis
import structlog

from solt import __version__
from solt.config import load_config, load_settings
from solt.exceptions import EnvironmentNotFoundError, SoltError
from solt.handlers import register_all_handlers
from solt.handlers.base import AppContext, CommandError, print_welcome
from solt.services.history import record_command
from solt.utils.functions import configure_logging


logger = structlog.get_logger()


class SoltGroup(click.Group):
    """Группа команд, переводящая ошибки приложения в сообщения click"""

    def parse_args(self, ctx: click.Context, args):
        ctx.meta["solt.args"] = list(args)
        return super().parse_args(ctx, args)

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except EnvironmentNotFoundError as e:
            app = ctx.find_object(AppContext)
            available = ", ".join(app.config.registry.names()) if app else ""
            raise CommandError(
                f"{e}. Available environments: {available or 'none'}. "
                "Add one with: solt config --add-env <name>"
            ) from e
        except SoltError as e:
            raise CommandError(str(e)) from e
        except redis.RedisError as e:
            raise CommandError(f"(error) {e}") from e


@click.group(
    cls=SoltGroup,
    invoke_without_command=True,
    help="Solt is a Redis CLI tool for connection management, key inspection, "
         "value viewing, monitoring and more."
)
@click.version_option(__version__, prog_name="solt")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
@click.option("-e", "--environment", metavar="ENVIRONMENT", help="Environment to use (dev, staging, prod, etc.)")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, environment: Optional[str]):
    settings = load_settings()
    configure_logging(settings.log_dir, verbose)

    # Загрузка конфигурации
    config = load_config(settings.config_path)
    ctx.obj = AppContext(settings=settings, config=config, environment=environment, verbose=verbose)

    if ctx.invoked_subcommand is None:
        print_welcome()
        return

    if ctx.invoked_subcommand != "history":
        record_command(settings.history_path, ctx.meta.get("solt.args", []), config.history_size)
    logger.debug("Running command", command=ctx.invoked_subcommand, environment=environment)


register_all_handlers(cli)
