"""Stuck reservation recovery command."""

from datetime import timedelta

import click
from certledger.cli.context import get_actor, get_provider_or_exit, get_store
from certledger.domain.sweeper import PendingSweeper


@click.command("sweep")
@click.option(
    "--older-than",
    type=click.IntRange(min=0),
    default=10,
    show_default=True,
    help="Minutes a reservation must be pending before it is swept",
)
@click.option("--limit", type=click.IntRange(min=1), default=50, show_default=True, help="Maximum reservations")
@click.pass_context
def sweep(ctx, older_than: int, limit: int):
    """Commit or roll back domain additions stuck in pending_api."""
    sweeper = PendingSweeper(get_store(ctx), get_provider_or_exit(ctx))
    result = sweeper.sweep(actor=get_actor(ctx), older_than=timedelta(minutes=older_than), limit=limit)

    if result.swept == 0:
        click.echo("No stuck reservations found.")
        return
    click.echo(
        f"Swept {result.swept}: {result.committed} committed, "
        f"{result.rolled_back} rolled back, {result.errors} errors"
    )
    if result.errors:
        ctx.exit(1)


def register_commands(cli):
    """Register sweep command with main CLI."""
    cli.add_command(sweep)
