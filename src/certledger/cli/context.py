"""CLI helpers for reaching the store, actor and provider from a command."""

from __future__ import annotations

import click

from certledger.database.base import LedgerStore
from certledger.domain.errors import ValidationError
from certledger.provider.client import ProvisioningClient
from certledger.provider.factories import create_provisioning_client
from certledger.cli.error_handling import handle_domain_error


def get_store(ctx: click.Context) -> LedgerStore:
    return ctx.obj["store"]


def get_actor(ctx: click.Context) -> str:
    return ctx.obj.get("actor") or "system"


def get_provider_or_exit(ctx: click.Context) -> ProvisioningClient:
    """Return the provisioning client, creating it from the environment on first use.

    Commands that never talk to the provider do not need credentials.
    """
    provider = ctx.obj.get("provider")
    if provider is None:
        try:
            provider = create_provisioning_client()
        except ValidationError as e:
            handle_domain_error(ctx, e)
        ctx.obj["provider"] = provider
        ctx.call_on_close(provider.close)
    return provider
