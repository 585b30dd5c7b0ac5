"""CLI error handling helpers."""

import click

from certledger.domain.errors import CreditRejected, DomainError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, CreditRejected):
        click.echo(
            f"Required: ${error.required:.2f} | Available: ${error.available:.2f} | "
            f"Shortfall: ${error.shortfall:.2f}",
            err=True,
        )
    ctx.exit(1)
