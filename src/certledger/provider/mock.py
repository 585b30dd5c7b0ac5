"""Offline provider used when mock mode is enabled.

Answers every action locally with the payload shapes the real API returns,
so the saga, refund and sweeper paths run end to end without credentials.
"""

import random
from collections import defaultdict
from typing import Any, Optional

import structlog

from certledger.provider.client import ProviderCredentials, ProvisioningClient

logger = structlog.get_logger(__name__)


class MockProvisioningClient(ProvisioningClient):
    """ProvisioningClient that never leaves the process."""

    def __init__(self, credentials: Optional[ProviderCredentials] = None):
        self.credentials = credentials or ProviderCredentials("mock_user", "mock_pass")
        self.base_url = "mock://provider"
        self.timeout = 0.0
        self.max_attempts = 1
        self.backoff_base = 0.0
        self._http = None
        self._domains: dict[str, set[str]] = defaultdict(set)
        logger.info("Provider running in mock mode; no API calls will be made")

    @property
    def mock_mode(self) -> bool:
        return True

    def call(self, action: str, params: dict[str, str], idempotency_token: Optional[str] = None) -> dict[str, Any]:
        logger.info("Mock provider request", action=action, params=params)
        account = params.get("acmeAccountID", "")

        if action == "ADDDOMAIN":
            name = params["domainName"]
            self._domains[account].add(name)
            return {
                "success": True,
                "orderNumber": random.randint(1_000_000, 9_999_999),
                "cost": 150 if name.startswith("*.") else 50,
                "currency": "USD",
                "domains": [{"domainName": name}],
            }
        if action == "REMOVEDOMAIN":
            self._domains[account].discard(params["domainName"])
            return {"success": True, "Domains": [{"domainName": params["domainName"]}]}
        if action == "LISTDOMAINS":
            return {"success": True, "domains": [{"domainName": d} for d in sorted(self._domains[account])]}
        if action in ("SUSPENDACCOUNT", "UNSUSPENDACCOUNT", "DEACTIVATEACCOUNT"):
            return {"success": True, "nRecordsUpdated": 1}

        return {"success": True}
