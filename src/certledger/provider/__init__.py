"""Certificate provider integration for certledger."""

from certledger.provider.client import AddDomainResult, ProviderCredentials, ProvisioningClient
from certledger.provider.factories import create_provisioning_client
from certledger.provider.failures import FailureKind, ProviderFailure
from certledger.provider.mock import MockProvisioningClient

__all__ = [
    "AddDomainResult",
    "FailureKind",
    "MockProvisioningClient",
    "ProviderCredentials",
    "ProviderFailure",
    "ProvisioningClient",
    "create_provisioning_client",
]
