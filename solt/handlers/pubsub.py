from dataclasses import asdict
from typing import Optional

import click
import structlog

from solt.handlers.base import AppContext, pass_app
from solt.services.redis_service import connect_store
from solt.utils.formatting import echo_rows, heading, success, warning
from solt.utils.functions import async_command


logger = structlog.get_logger()


@click.command("pubsub")
@click.option("--subscribe", metavar="CHANNEL", help="Subscribe to channel")
@click.option("--publish", metavar="CHANNEL", help="Publish to channel")
@click.argument("message", required=False)
@pass_app
@async_command
async def pubsub_command(
    app: AppContext,
    subscribe: Optional[str],
    publish: Optional[str],
    message: Optional[str]
):
    """Pub/Sub operations."""
    if publish:
        if message is None:
            raise click.UsageError("MESSAGE is required with --publish")
        async with connect_store(app.profile()) as store:
            receivers = await store.publish(publish, message)
        logger.info("Message published", channel=publish, receivers=receivers)
        success(f"Message published to '{publish}' ({receivers} subscribers)")
    elif subscribe:
        async with connect_store(app.profile()) as store:
            logger.info("Subscribing", channel=subscribe)
            click.secho(f"Subscribed to '{subscribe}'. Press Ctrl+C to stop", fg="yellow")
            async for data in store.subscribe(subscribe):
                click.echo(f"{click.style(subscribe, fg='cyan')}: {data}")
    else:
        raise click.UsageError("Specify --subscribe CHANNEL or --publish CHANNEL MESSAGE")


@click.command("cluster")
@click.option("--nodes", is_flag=True, help="Show cluster nodes")
@click.option("--slots", is_flag=True, help="Show cluster slots")
@pass_app
@async_command
async def cluster_command(app: AppContext, nodes: bool, slots: bool):
    """Cluster operations."""
    async with connect_store(app.profile()) as store:
        if slots:
            ranges = await store.cluster_slots()
            heading(f"Cluster Slots ({len(ranges)} ranges):")
            echo_rows([{"Start": s, "End": e, "Master": m} for s, e, m in ranges], app.output_format)
        else:
            node_list = await store.cluster_nodes()
            heading(f"Cluster Nodes ({len(node_list)}):")
            rows = []
            for node in node_list:
                row = asdict(node)
                row["slots"] = " ".join(node.slots)
                rows.append(row)
            echo_rows(rows, app.output_format)


@click.command("sentinel")
@click.option("--masters", is_flag=True, help="Show sentinel masters")
@click.option("--slaves", metavar="MASTER", help="Show replicas of a master")
@pass_app
@async_command
async def sentinel_command(app: AppContext, masters: bool, slaves: Optional[str]):
    """Sentinel operations."""
    async with connect_store(app.profile()) as store:
        if slaves:
            replicas = await store.sentinel_replicas(slaves)
            if not replicas:
                warning(f"No replicas found for master '{slaves}'")
                return
            heading(f"Replicas of '{slaves}' ({len(replicas)}):")
            echo_rows(replicas, app.output_format)
        else:
            master_list = await store.sentinel_masters()
            if not master_list:
                warning("No masters monitored by this sentinel")
                return
            heading(f"Sentinel Masters ({len(master_list)}):")
            echo_rows([asdict(m) for m in master_list], app.output_format)
