from typing import Optional

import click
import structlog

from solt.handlers.base import AppContext, CommandError, pass_app
from solt.services.redis_service import KeyType, connect_store
from solt.utils.formatting import pretty_json, success, warning
from solt.utils.functions import async_command, parse_range, split_pair


logger = structlog.get_logger()


async def print_value(store, key: str, key_type: KeyType, pretty: bool) -> None:
    """Выводит значение ключа в зависимости от его типа"""
    if key_type == KeyType.STRING:
        value = await store.get_string_value(key)
        if value is None:
            raise CommandError(f"Key '{key}' not found or value is nil")
        if pretty:
            click.secho("Value (pretty-printed):", bold=True)
            click.echo(pretty_json(value))
        else:
            click.secho("Value:", bold=True)
            click.echo(value)

    elif key_type == KeyType.HASH:
        data = await store.get_hash(key)
        if not data:
            warning("Hash is empty")
            return
        click.secho("Hash fields:", bold=True)
        for name, value in sorted(data.items()):
            click.echo(f"  {click.style(name, fg='cyan')}: {value}")

    elif key_type == KeyType.LIST:
        items = await store.get_list(key)
        if not items:
            warning("List is empty")
            return
        click.secho(f"List ({len(items)} items):", bold=True)
        for i, item in enumerate(items):
            click.echo(f"  [{i}]: {item}")

    elif key_type == KeyType.SET:
        members = await store.get_set(key)
        if not members:
            warning("Set is empty")
            return
        click.secho(f"Set ({len(members)} members):", bold=True)
        for member in members:
            click.echo(f"  • {member}")

    elif key_type == KeyType.ZSET:
        members = await store.get_sorted_set(key)
        if not members:
            warning("Sorted set is empty")
            return
        click.secho(f"Sorted set ({len(members)} members):", bold=True)
        for member, score in members:
            click.echo(f"  • {member} (score: {score})")

    else:
        raise CommandError(f"Unsupported key type: {key_type.value}")


@click.command("get")
@click.argument("key")
@click.option("--pretty", is_flag=True, help="Pretty print JSON values")
@click.option("--hash-field", metavar="KEY:FIELD", help="Get hash field (format: key:field)")
@click.option("--list-range", metavar="START-STOP", help="Get list range (format: start-stop)")
@pass_app
@async_command
async def get_command(
    app: AppContext,
    key: str,
    pretty: bool,
    hash_field: Optional[str],
    list_range: Optional[str]
):
    """Get values from Redis keys."""
    logger.info("Getting value", key=key)

    if hash_field:
        hash_key, field_name = split_pair(hash_field, ":", "--hash-field")
        async with connect_store(app.profile()) as store:
            value = await store.get_hash_field(hash_key, field_name)
        if value is None:
            raise CommandError(f"Field '{field_name}' not found in hash '{hash_key}'")
        click.secho(f"Field: {hash_key}:{field_name}", bold=True)
        click.secho("Value:", bold=True)
        click.echo(value)
        return

    if list_range:
        start, stop = parse_range(list_range, "--list-range")
        async with connect_store(app.profile()) as store:
            items = await store.get_list(key, start, stop)
        if not items:
            warning("No items found in the specified range")
            return
        click.secho(f"List range [{start}-{stop}] ({len(items)} items):", bold=True)
        for i, item in enumerate(items):
            click.echo(f"  [{start + i}]: {item}")
        return

    async with connect_store(app.profile()) as store:
        key_type = await store.key_type(key)
        if key_type == KeyType.NONE:
            raise CommandError(f"Key '{key}' not found")
        click.secho(f"Key: {key}", bold=True)
        click.secho(f"Type: {key_type.value}", fg="cyan")
        await print_value(store, key, key_type, pretty)


@click.command("set")
@click.argument("key")
@click.argument("value")
@click.option("--ttl", type=click.IntRange(min=1), help="TTL in seconds")
@click.option("--hash-field", metavar="KEY:FIELD:VALUE", help="Set hash field (format: key:field:value)")
@click.option("--push-list", type=click.Choice(["left", "right"], case_sensitive=False), help="Push VALUE to list")
@click.option("--add-set", metavar="MEMBER", help="Add member to set")
@click.option("--add-zset", metavar="MEMBER:SCORE", help="Add to sorted set (format: member:score)")
@pass_app
@async_command
async def set_command(
    app: AppContext,
    key: str,
    value: str,
    ttl: Optional[int],
    hash_field: Optional[str],
    push_list: Optional[str],
    add_set: Optional[str],
    add_zset: Optional[str]
):
    """Set values in Redis."""
    if hash_field:
        # Ключ может содержать двоеточия: поле и значение - две последние части
        parts = hash_field.rsplit(":", 2)
        if len(parts) != 3 or not all(parts):
            raise click.BadParameter("expected format 'key:field:value'", param_hint="--hash-field")
        hash_key, field_name, field_value = parts
        async with connect_store(app.profile()) as store:
            await store.set_hash_field(hash_key, field_name, field_value)
        success(f"Successfully set hash field '{hash_key}:{field_name}'")

    elif push_list:
        left = push_list.lower() == "left"
        async with connect_store(app.profile()) as store:
            length = await store.push_list(key, value, left)
        success(f"Successfully pushed to {push_list.lower()} of list '{key}' (new length: {length})")

    elif add_set:
        async with connect_store(app.profile()) as store:
            added = await store.add_to_set(key, add_set)
        if added:
            success(f"Successfully added new member '{add_set}' to set '{key}'")
        else:
            warning(f"Member '{add_set}' already exists in set '{key}'")

    elif add_zset:
        member, score_text = split_pair(add_zset, ":", "--add-zset")
        try:
            score = float(score_text)
        except ValueError:
            raise click.BadParameter("score should be a number", param_hint="--add-zset") from None
        async with connect_store(app.profile()) as store:
            added = await store.add_to_sorted_set(key, member, score)
        if added:
            success(f"Successfully added new member '{member}' to sorted set '{key}' with score {score}")
        else:
            warning(f"Updated member '{member}' in sorted set '{key}' with score {score}")

    else:
        async with connect_store(app.profile()) as store:
            await store.set_string_value(key, value, ttl)
        success(f"Successfully set key '{key}'")
        if ttl:
            click.echo("TTL: " + click.style(f"{ttl} seconds", fg="cyan"))


@click.command("edit")
@click.argument("key")
@click.argument("value")
@pass_app
@async_command
async def edit_command(app: AppContext, key: str, value: str):
    """Edit an existing string value (TTL is kept)."""
    async with connect_store(app.profile()) as store:
        if not await store.edit_string_value(key, value):
            raise CommandError(f"Key '{key}' not found")
    success(f"Successfully updated key '{key}'")


@click.command("delete")
@click.argument("key", required=False)
@click.option("--pattern", help="Delete by pattern")
@click.option("--confirm", is_flag=True, help="Confirm deletion")
@click.option("--flush-db", is_flag=True, help="Flush current database")
@click.option("--flush-all", is_flag=True, help="Flush all databases")
@pass_app
@async_command
async def delete_command(
    app: AppContext,
    key: Optional[str],
    pattern: Optional[str],
    confirm: bool,
    flush_db: bool,
    flush_all: bool
):
    """Delete Redis keys."""
    if pattern:
        async with connect_store(app.profile()) as store:
            keys = sorted(await store.list_keys_matching(pattern))
            if not keys:
                warning(f"No keys found matching pattern '{pattern}'")
                return
            click.secho(f"Found {len(keys)} keys matching pattern '{pattern}'", fg="cyan", bold=True)
            if not confirm:
                warning("Keys to be deleted:")
                for k in keys:
                    click.echo(f"  • {k}")
                click.secho("Use --confirm to proceed with deletion", fg="red", bold=True)
                return
            deleted = await store.delete_keys(keys)
        logger.info("Keys deleted", pattern=pattern, count=deleted)
        success(f"Successfully deleted {deleted} keys")

    elif flush_db or flush_all:
        scope = "ALL databases" if flush_all else "the current database"
        if not confirm:
            click.secho(f"WARNING: This will delete ALL keys in {scope}!", fg="red", bold=True)
            click.secho("Use --confirm to proceed", fg="red")
            return
        async with connect_store(app.profile()) as store:
            if flush_all:
                await store.flush_all()
            else:
                await store.flush_db()
        logger.warning("Flushed", scope=scope)
        success(f"Flushed {scope}")

    elif key:
        async with connect_store(app.profile()) as store:
            deleted = await store.delete_key(key)
        if deleted:
            success(f"Successfully deleted key '{key}'")
        else:
            warning(f"Key '{key}' not found")

    else:
        raise click.UsageError("Specify a KEY, --pattern, --flush-db or --flush-all")
