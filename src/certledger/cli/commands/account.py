"""Account management commands."""

import click
from certledger.cli.context import get_actor, get_provider_or_exit, get_store
from certledger.cli.error_handling import handle_domain_error
from certledger.domain.account import AccountService
from certledger.domain.entities import CertificateType
from certledger.domain.errors import DomainError


def _format_date(value) -> str:
    return value.strftime("%Y-%m-%d") if value is not None else "-"


@click.group()
def account_group():
    """Manage CA accounts."""
    pass


@account_group.command("create")
@click.argument("client_id", type=int)
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option(
    "--type",
    "certificate_type",
    type=click.Choice([c.value for c in CertificateType], case_sensitive=False),
    default=CertificateType.DV.value,
    show_default=True,
    help="Certificate validation type",
)
@click.option("--years", type=click.IntRange(1, 3), default=1, show_default=True, help="Subscription years")
@click.option("--external-id", help="Provider account ID")
@click.pass_context
def create_account(ctx, client_id: int, name: str, certificate_type: str, years: int, external_id: str | None):
    """Create a new account in pending_start status.

    The account becomes active when its first domain is added.

    Examples:
        certledger account create 1 "Main site" --external-id ACME-123
        certledger account create 1 "Shop" --type OV --years 2 --external-id ACME-456
    """
    service = AccountService(get_store(ctx))

    try:
        account_id = service.create_account(
            client_id=client_id,
            name=name,
            certificate_type=certificate_type,
            subscription_years=years,
            external_id=external_id,
            actor=get_actor(ctx),
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Created account '{name}' (ID: {account_id})")


@account_group.command("status")
@click.argument("account_id", type=int)
@click.pass_context
def account_status(ctx, account_id: int):
    """Show account status and subscription period."""
    store = get_store(ctx)
    service = AccountService(store)

    try:
        account = service.get_account_status(account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Account:     {account.name} (ID: {account.id})")
    click.echo(f"Status:      {account.status}")
    click.echo(f"Type:        {account.certificate_type}, {account.subscription_years} year(s)")
    click.echo(f"External ID: {account.external_id or '-'}")
    click.echo(f"Period:      {_format_date(account.start_date)} to {_format_date(account.end_date)}")
    click.echo(f"Active domains: {store.count_active_domains(account.id)}")


def _run_admin_action(ctx, account_id: int, action: str) -> None:
    service = AccountService(get_store(ctx), provider=get_provider_or_exit(ctx))
    try:
        account = getattr(service, action)(account_id, actor=get_actor(ctx))
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Account {account.id} is now {account.status}")


@account_group.command("suspend")
@click.argument("account_id", type=int)
@click.pass_context
def suspend_account(ctx, account_id: int):
    """Suspend an account at the provider."""
    _run_admin_action(ctx, account_id, "suspend")


@account_group.command("unsuspend")
@click.argument("account_id", type=int)
@click.pass_context
def unsuspend_account(ctx, account_id: int):
    """Lift an account suspension."""
    _run_admin_action(ctx, account_id, "unsuspend")


@account_group.command("terminate")
@click.argument("account_id", type=int)
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt")
@click.pass_context
def terminate_account(ctx, account_id: int, yes: bool):
    """Permanently deactivate an account. This cannot be undone."""
    if not yes and not click.confirm(f"Permanently deactivate account {account_id}? This cannot be undone"):
        click.echo("Cancelled.")
        return
    _run_admin_action(ctx, account_id, "terminate")


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
