"""Account domain service."""

from typing import Optional

import structlog

from certledger.database.base import LedgerStore
from certledger.domain.entities import Account as AccountEntity, AccountStatus, CertificateType
from certledger.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    account_not_found,
    client_not_found,
    invalid_account_transition,
)
from certledger.provider.client import ProvisioningClient

logger = structlog.get_logger(__name__)

SUBSCRIPTION_YEARS = (1, 2, 3)


class AccountService:
    """Service for creating accounts and administering their provider subscription."""

    def __init__(self, store: LedgerStore, provider: Optional[ProvisioningClient] = None):
        """Initialize account service.

        Args:
            store: Ledger store
            provider: Provisioning client, needed only for suspend/unsuspend/terminate
        """
        self.store = store
        self.provider = provider

    def create_account(
        self,
        client_id: int,
        name: str,
        certificate_type: str,
        subscription_years: int,
        external_id: Optional[str] = None,
        actor: str = "system",
    ) -> int:
        """Create a new account in pending_start status.

        Args:
            client_id: Owning client
            name: Account name
            certificate_type: DV or OV
            subscription_years: Subscription length, 1 to 3 years
            external_id: Provider account ID
            actor: Who is creating the account

        Returns:
            Account ID

        Raises:
            ValidationError: If name, certificate type or subscription years are invalid
            NotFoundError: If the client does not exist
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Account name cannot be empty")

        try:
            cert_type = CertificateType(str(certificate_type).strip().upper())
        except ValueError:
            raise ValidationError(f"Unknown certificate type '{certificate_type}' (expected DV or OV)")

        if subscription_years not in SUBSCRIPTION_YEARS:
            raise ValidationError(f"Subscription years must be 1, 2 or 3, got {subscription_years}")

        if self.store.get_client(client_id) is None:
            raise NotFoundError(client_not_found(client_id))

        account_id = self.store.create_account(
            client_id=client_id,
            name=name,
            certificate_type=cert_type,
            subscription_years=subscription_years,
            external_id=external_id or None,
        )
        self.store.append_audit(
            actor,
            "create_subscription",
            "account",
            account_id,
            {
                "name": name,
                "client_id": client_id,
                "certificate_type": str(cert_type),
                "subscription_years": subscription_years,
                "external_id": external_id,
            },
        )
        return account_id

    def get_account_status(self, account_id: int) -> AccountEntity:
        """Get an account with its current status and subscription period.

        Raises:
            NotFoundError: If the account does not exist
        """
        account = self.store.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def suspend(self, account_id: int, actor: str) -> AccountEntity:
        """Suspend an account at the provider and locally.

        Raises:
            ConflictError: If the account is already suspended or terminated
        """
        account = self.get_account_status(account_id)
        if account.status in (AccountStatus.SUSPENDED, AccountStatus.TERMINATED):
            raise ConflictError(invalid_account_transition(account_id, account.status, "suspend"))
        return self._apply(account, "suspend", AccountStatus.SUSPENDED, actor)

    def unsuspend(self, account_id: int, actor: str) -> AccountEntity:
        """Lift a suspension.

        Raises:
            ConflictError: If the account is not suspended
        """
        account = self.get_account_status(account_id)
        if account.status != AccountStatus.SUSPENDED:
            raise ConflictError(
                invalid_account_transition(account_id, account.status, "unsuspend", "account is not suspended")
            )
        return self._apply(account, "unsuspend", AccountStatus.ACTIVE, actor)

    def terminate(self, account_id: int, actor: str) -> AccountEntity:
        """Permanently deactivate an account at the provider and terminate it locally.

        Raises:
            ConflictError: If the account is already terminated
        """
        account = self.get_account_status(account_id)
        if account.status == AccountStatus.TERMINATED:
            raise ConflictError(
                invalid_account_transition(account_id, account.status, "terminate", "account is already terminated")
            )
        return self._apply(account, "deactivate", AccountStatus.TERMINATED, actor)

    def _apply(self, account: AccountEntity, action: str, new_status: AccountStatus, actor: str) -> AccountEntity:
        if account.external_id:
            if self.provider is None:
                raise ValidationError(f"A provider is required to {action} account {account.id}")
            if action == "suspend":
                self.provider.suspend_account(account.external_id)
            elif action == "unsuspend":
                self.provider.unsuspend_account(account.external_id)
            else:
                self.provider.deactivate_account(account.external_id)

        self.store.update_account(account.id, {"status": new_status})
        self.store.append_audit(
            actor,
            f"subscription_{action}",
            "account",
            account.id,
            {
                "external_id": account.external_id,
                "previous_status": str(account.status),
                "new_status": str(new_status),
            },
        )
        logger.info("Account status changed", account_id=account.id, action=action, new_status=str(new_status))
        return self.get_account_status(account.id)
