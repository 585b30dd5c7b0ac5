"""Client management commands."""

import click
from certledger.cli.context import get_store
from certledger.cli.error_handling import handle_domain_error
from certledger.domain.errors import DomainError
from certledger.domain.partner import PartnerService


@click.group()
def client_group():
    """Manage partner clients."""
    pass


@client_group.command("create")
@click.argument("partner_id", type=int)
@click.argument("name", metavar="CLIENT_NAME")
@click.pass_context
def create_client(ctx, partner_id: int, name: str):
    """Create a client under a partner.

    Examples:
        certledger client create 1 "Example Corp"
    """
    service = PartnerService(get_store(ctx))

    try:
        client_id = service.create_client(partner_id=partner_id, name=name)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Created client '{name}' (ID: {client_id})")


def register_commands(cli):
    """Register client commands with main CLI."""
    cli.add_command(client_group, name="client")
