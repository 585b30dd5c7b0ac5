"""Provisioning client factory functions."""

import base64
import os
from typing import Optional

from certledger.domain.errors import ValidationError
from certledger.provider.client import (
    DEFAULT_API_URL,
    DEFAULT_TIMEOUT,
    ProviderCredentials,
    ProvisioningClient,
)
from certledger.provider.mock import MockProvisioningClient

_TRUTHY = {"1", "true", "yes", "on"}


def _decode_password(password: str) -> str:
    """Support base64-encoded passwords for special characters (``base64:<data>``)."""
    if password.startswith("base64:"):
        return base64.b64decode(password[len("base64:"):]).decode("utf-8")
    return password


def create_provisioning_client(
    login_name: Optional[str] = None,
    login_password: Optional[str] = None,
    mock: Optional[bool] = None,
) -> ProvisioningClient:
    """Create a provisioning client from arguments or environment.

    Args:
        login_name: Provider login. Defaults to CERTLEDGER_PROVIDER_LOGIN
        login_password: Provider password. Defaults to CERTLEDGER_PROVIDER_PASSWORD
        mock: Force mock mode. Defaults to CERTLEDGER_PROVIDER_MOCK

    Returns:
        ProvisioningClient, or MockProvisioningClient in mock mode

    Raises:
        ValidationError: If credentials are missing and mock mode is off
    """
    if mock is None:
        mock = os.environ.get("CERTLEDGER_PROVIDER_MOCK", "").strip().lower() in _TRUTHY

    login_name = login_name or os.environ.get("CERTLEDGER_PROVIDER_LOGIN")
    login_password = login_password or os.environ.get("CERTLEDGER_PROVIDER_PASSWORD")

    if mock:
        return MockProvisioningClient()

    if not login_name or not login_password:
        raise ValidationError(
            "CERTLEDGER_PROVIDER_LOGIN and CERTLEDGER_PROVIDER_PASSWORD must be set "
            "(or enable CERTLEDGER_PROVIDER_MOCK)"
        )

    return ProvisioningClient(
        ProviderCredentials(login_name, _decode_password(login_password)),
        base_url=os.environ.get("CERTLEDGER_PROVIDER_URL", DEFAULT_API_URL),
        timeout=float(os.environ.get("CERTLEDGER_PROVIDER_TIMEOUT", DEFAULT_TIMEOUT)),
    )
