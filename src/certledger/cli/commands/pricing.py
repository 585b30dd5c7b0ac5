"""Pricing tier commands."""

import click
from certledger.cli.context import get_store
from certledger.domain.pricing import PricingService


@click.group()
def pricing_group():
    """Manage pricing tiers."""
    pass


@pricing_group.command("init-tiers")
@click.pass_context
def init_tiers(ctx):
    """Create or refresh the default STANDARD, SILVER and GOLD tiers."""
    service = PricingService(get_store(ctx))
    tiers = service.initialize_tiers()
    click.echo(f"Initialized {len(tiers)} pricing tiers.")


@pricing_group.command("list")
@click.pass_context
def list_tiers(ctx):
    """List pricing tiers."""
    tiers = PricingService(get_store(ctx)).list_tiers()
    if not tiers:
        click.echo("No pricing tiers found. Run 'certledger pricing init-tiers'.")
        return

    click.echo(f"\n{'Code':10s} {'DV':>8s} {'DV *':>8s} {'OV':>8s} {'OV *':>8s}")
    click.echo("-" * 46)
    for t in tiers:
        suffix = "" if t.is_active else "  (inactive)"
        click.echo(
            f"{t.code:10s} {t.dv_single:>8.2f} {t.dv_wildcard:>8.2f} "
            f"{t.ov_single:>8.2f} {t.ov_wildcard:>8.2f}{suffix}"
        )


def register_commands(cli):
    """Register pricing commands with main CLI."""
    cli.add_command(pricing_group, name="pricing")
