"""Partner management commands."""

import click
from certledger.cli.context import get_store
from certledger.cli.error_handling import handle_domain_error
from certledger.domain.entities import PaymentType
from certledger.domain.errors import DomainError
from certledger.domain.partner import PartnerService
from certledger.utils.amount_parser import parse_amount


@click.group()
def partner_group():
    """Manage resale partners."""
    pass


@partner_group.command("create")
@click.argument("name", metavar="PARTNER_NAME")
@click.option(
    "--payment-type",
    type=click.Choice([p.value for p in PaymentType]),
    default=PaymentType.POST_PAID.value,
    show_default=True,
    help="Billing model",
)
@click.option("--credit-limit", help="Credit limit for deposit partners (e.g. 5000 or $5,000.00)")
@click.option("--pricing-class", default="STANDARD", show_default=True, help="Pricing tier code")
@click.pass_context
def create_partner(ctx, name: str, payment_type: str, credit_limit: str | None, pricing_class: str):
    """Create a new partner.

    Examples:
        certledger partner create "Acme Hosting"
        certledger partner create "Prepaid Reseller" --payment-type deposit --credit-limit 5000
        certledger partner create "Big Reseller" --pricing-class GOLD
    """
    service = PartnerService(get_store(ctx))

    try:
        limit = parse_amount(credit_limit) if credit_limit is not None else None
        partner_id = service.create_partner(
            name=name,
            payment_type=payment_type,
            credit_limit=limit,
            pricing_class=pricing_class,
        )
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)

    click.echo(f"Created partner '{name}' (ID: {partner_id})")


@partner_group.command("credit")
@click.argument("partner_id", type=int)
@click.pass_context
def partner_credit(ctx, partner_id: int):
    """Show used and available credit for a partner."""
    service = PartnerService(get_store(ctx))

    try:
        partner = service.get_partner(partner_id)
        summary = service.credit_summary(partner_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Partner:      {partner.name} (ID: {partner.id})")
    click.echo(f"Payment type: {summary.payment_type}")
    click.echo(f"Used:         ${summary.used:.2f}")
    if summary.available is None:
        click.echo("Available:    unlimited (post-paid)")
    else:
        click.echo(f"Credit limit: ${summary.credit_limit or 0:.2f}")
        click.echo(f"Available:    ${summary.available:.2f}")


def register_commands(cli):
    """Register partner commands with main CLI."""
    cli.add_command(partner_group, name="partner")
