from typing import Optional

import click

from solt.handlers.base import AppContext, pass_app
from solt.services.history import clear_history, load_history
from solt.utils.formatting import heading, success, warning


@click.command("favorites")
@click.option("--add", metavar="KEY", help="Add key to favorites")
@click.option("--remove", metavar="KEY", help="Remove key from favorites")
@click.option("--list", "list_all", is_flag=True, help="List favorites")
@pass_app
def favorites_command(app: AppContext, add: Optional[str], remove: Optional[str], list_all: bool):
    """Manage favorites."""
    favorites = app.config.favorites

    if add:
        if add in favorites:
            warning(f"'{add}' is already a favorite")
            return
        favorites.append(add)
        app.save()
        success(f"Added '{add}' to favorites")
    elif remove:
        if remove not in favorites:
            warning(f"'{remove}' is not a favorite")
            return
        favorites.remove(remove)
        app.save()
        success(f"Removed '{remove}' from favorites")
    else:
        if not favorites:
            warning("No favorites yet. Add one with: solt favorites --add <key>")
            return
        heading("Favorites:")
        for key in favorites:
            click.echo("• " + click.style(key, fg="cyan"))


@click.command("history")
@click.option("--show", is_flag=True, help="Show command history")
@click.option("--clear", is_flag=True, help="Clear command history")
@pass_app
def history_command(app: AppContext, show: bool, clear: bool):
    """View command history."""
    path = app.settings.history_path
    if clear:
        clear_history(path)
        success("Command history cleared")
        return

    entries = load_history(path)
    if not entries:
        warning("Command history is empty")
        return

    heading(f"Command History ({len(entries)}):")
    for i, entry in enumerate(entries, 1):
        click.echo(f"{i:>4}  {click.style(entry.get('timestamp', ''), fg='yellow')}  {entry.get('command', '')}")
