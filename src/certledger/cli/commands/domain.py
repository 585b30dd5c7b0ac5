"""Domain provisioning and removal commands."""

import click
from certledger.cli.context import get_actor, get_provider_or_exit, get_store
from certledger.cli.error_handling import handle_domain_error
from certledger.domain.errors import DomainError
from certledger.domain.provisioning import DomainRequest, ProvisioningSaga
from certledger.domain.refund import RefundEngine


@click.group()
def domain_group():
    """Add, remove and list account domains."""
    pass


@domain_group.command("add")
@click.argument("account_id", type=int)
@click.argument("names", nargs=-1, required=True, metavar="DOMAIN...")
@click.pass_context
def add_domains(ctx, account_id: int, names: tuple[str, ...]):
    """Add one or more domains to an account.

    Names starting with '*.' are added as wildcard domains. The whole batch
    is checked against the partner's credit before anything is added; each
    domain then succeeds or fails on its own.

    Examples:
        certledger domain add 1 example.com
        certledger domain add 1 example.com "*.example.com" shop.example.com
    """
    saga = ProvisioningSaga(get_store(ctx), get_provider_or_exit(ctx))

    try:
        batch = saga.submit_domain_batch(
            account_id, [DomainRequest(name=n) for n in names], actor=get_actor(ctx)
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    for result in batch.results:
        if result.success:
            click.echo(f"  added   {result.domain:40s} ${result.price:>8.2f}  order {result.order_number or '-'}")
        else:
            click.echo(f"  failed  {result.domain:40s} {result.error}")

    click.echo(f"\n{batch.succeeded} added, {batch.failed} failed, charged ${batch.total_charged:.2f}")
    if batch.activated:
        click.echo(f"Account {account_id} activated")
    if batch.succeeded == 0:
        ctx.exit(1)


@domain_group.command("remove")
@click.argument("domain_id", type=int)
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt")
@click.pass_context
def remove_domain(ctx, domain_id: int, yes: bool):
    """Remove a domain, refunding it if added within the last 30 days."""
    store = get_store(ctx)
    domain = store.get_domain(domain_id)
    if domain is not None and not yes:
        if not click.confirm(f"Remove domain '{domain.name}' (ID: {domain_id})?"):
            click.echo("Cancelled.")
            return

    engine = RefundEngine(store, provider=get_provider_or_exit(ctx))
    try:
        result = engine.remove(domain_id, actor=get_actor(ctx))
    except DomainError as e:
        handle_domain_error(ctx, e)

    if result.refunded:
        click.echo(f"Removed domain {domain_id}; refunded ${result.refund_amount:.2f}")
    else:
        click.echo(f"Removed domain {domain_id}; no refund ({result.days_since_added} days since added)")
    if result.refund_error:
        click.echo(f"Warning: refund could not be recorded: {result.refund_error}", err=True)
    if result.provider_error:
        click.echo(f"Warning: provider still lists the domain: {result.provider_error}", err=True)
    if result.account_deactivated:
        click.echo("Account has no active domains left and is now inactive")


@domain_group.command("list")
@click.argument("account_id", type=int)
@click.option("--all", "include_removed", is_flag=True, help="Include removed domains")
@click.pass_context
def list_domains(ctx, account_id: int, include_removed: bool):
    """List domains of an account."""
    domains = get_store(ctx).list_domains(account_id, include_removed=include_removed)
    if not domains:
        click.echo("No domains found.")
        return

    click.echo("\nDomains:")
    click.echo("-" * 80)
    for d in domains:
        click.echo(
            f"ID: {d.id:4d} | {d.name:35s} | {d.status:8s} | ${d.price_charged:>8.2f} | "
            f"added {d.added_at:%Y-%m-%d}"
        )


def register_commands(cli):
    """Register domain commands with main CLI."""
    cli.add_command(domain_group, name="domain")
