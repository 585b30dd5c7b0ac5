"""Domain removal with time-boxed refund."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Optional

import structlog

from certledger.database.base import LedgerStore
from certledger.domain.entities import (
    Domain,
    DomainStatus,
    Severity,
    Transaction,
    TransactionStatus,
    TransactionType,
    utcnow,
)
from certledger.domain.errors import (
    IntegrityError,
    LedgerError,
    NotFoundError,
    ProviderError,
    RemovalRejected,
    domain_already_refunded,
    domain_already_removed,
    domain_not_found,
    original_transaction_missing,
    transaction_not_settled,
)
from certledger.domain.lifecycle import AccountLifecycle
from certledger.provider.client import ProvisioningClient

logger = structlog.get_logger(__name__)

REFUND_WINDOW = timedelta(days=30)

_UNSETTLED_STATUSES = frozenset({TransactionStatus.FAILED, TransactionStatus.PENDING_API})


@dataclass(frozen=True)
class RemovalResult:
    """Outcome of a domain removal."""

    domain_id: int
    refunded: bool
    refund_amount: Decimal
    days_since_added: int
    original_transaction_id: int
    refund_transaction_id: Optional[int] = None
    refund_error: Optional[str] = None
    provider_error: Optional[str] = None
    account_deactivated: bool = False


def in_refund_window(added_at: datetime, now: datetime) -> bool:
    """Return True if a domain added at ``added_at`` is still refundable at ``now``."""
    return now - added_at <= REFUND_WINDOW


class RefundEngine:
    """Removes domains and refunds them when removed within 30 days of being added.

    The ledger is written first. When a provider is given, the domain is then
    unsubscribed there; a provider failure is audited at critical severity
    for reconciliation and does not undo the removal.
    """

    def __init__(
        self,
        store: LedgerStore,
        provider: Optional[ProvisioningClient] = None,
        lifecycle: Optional[AccountLifecycle] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.provider = provider
        self.lifecycle = lifecycle or AccountLifecycle(store, clock=clock)
        self.clock = clock

    def remove(self, domain_id: int, actor: str) -> RemovalResult:
        """Remove a domain, refunding it if it is inside the refund window.

        Args:
            domain_id: Domain to remove
            actor: Who is removing the domain

        Returns:
            RemovalResult describing whether and how much was refunded

        Raises:
            NotFoundError: If the domain does not exist
            IntegrityError: If the domain has no add_domain transaction
            RemovalRejected: If the addition is unsettled, already refunded or
                the domain is already removed
            LedgerError: If the domain cannot be marked removed (the provider is
                not called)
        """
        domain = self.store.get_domain(domain_id)
        if domain is None:
            raise NotFoundError(domain_not_found(domain_id))

        now = self.clock()
        original = self._check_preconditions(domain, now)
        refundable = in_refund_window(domain.added_at, now)
        days_since_added = max((now - domain.added_at).days, 0)

        self.store.update_domain_status(domain.id, DomainStatus.REMOVED, removed_at=now)

        refund: Optional[Transaction] = None
        refund_error: Optional[str] = None
        if refundable and domain.price_charged > 0:
            try:
                refund = self.store.settle_refund(
                    original,
                    domain.price_charged,
                    f"Refund for removed domain: {domain.name} (within 30-day window)",
                    created_at=now,
                )
            except LedgerError as e:
                refund_error = str(e)
                logger.critical(
                    "Refund failed after domain removal",
                    domain_id=domain.id,
                    original_transaction_id=original.id,
                    error=refund_error,
                )
                self.store.append_audit(
                    actor,
                    "refund_failed",
                    "transaction",
                    original.id,
                    {
                        "error": refund_error,
                        "domain_id": domain.id,
                        "domain_name": domain.name,
                        "amount": str(domain.price_charged),
                    },
                    severity=Severity.CRITICAL,
                    created_at=now,
                )

        refund_amount = domain.price_charged if refund is not None else Decimal("0.00")
        self.store.append_audit(
            actor,
            "refund_domain" if refundable else "remove_domain",
            "domain",
            domain.id,
            {
                "domain_name": domain.name,
                "days_since_added": days_since_added,
                "refunded": refund is not None,
                "refund_amount": str(refund_amount),
                "original_transaction_id": original.id,
                "refund_transaction_id": refund.id if refund is not None else None,
            },
            created_at=now,
        )
        logger.info(
            "Domain removed",
            domain_id=domain.id,
            refunded=refund is not None,
            refund_amount=str(refund_amount),
            days_since_added=days_since_added,
        )

        account = self.store.get_account(domain.account_id)
        provider_error: Optional[str] = None
        if self.provider is not None and account is not None and account.external_id:
            provider_error = self._remove_at_provider(domain, account.external_id, actor, now)

        deactivated = False
        if account is not None:
            deactivated = self.lifecycle.after_removal(account, actor, triggered_by=f"remove_domain:{domain.name}")

        return RemovalResult(
            domain_id=domain.id,
            refunded=refund is not None,
            refund_amount=refund_amount,
            days_since_added=days_since_added,
            original_transaction_id=original.id,
            refund_transaction_id=refund.id if refund is not None else None,
            refund_error=refund_error,
            provider_error=provider_error,
            account_deactivated=deactivated,
        )

    def _remove_at_provider(self, domain: Domain, external_id: str, actor: str, now: datetime) -> Optional[str]:
        """Unsubscribe a removed domain at the provider. Returns the error message on failure."""
        try:
            self.provider.remove_domain(external_id, domain.name)
        except ProviderError as e:
            logger.critical(
                "Provider removal failed after ledger removal",
                domain_id=domain.id,
                external_id=external_id,
                failure=e.kind.value,
                error=str(e),
            )
            self.store.append_audit(
                actor,
                "provider_remove_failed",
                "domain",
                domain.id,
                {
                    "domain_name": domain.name,
                    "external_id": external_id,
                    "failure": e.kind.value,
                    "error": str(e),
                },
                severity=Severity.CRITICAL,
                created_at=now,
            )
            return str(e)
        return None

    def _check_preconditions(self, domain: Domain, now: datetime) -> Transaction:
        """Return the original add_domain transaction if the domain may be removed."""
        original = self.store.find_transaction_by_domain_and_type(domain.id, TransactionType.ADD_DOMAIN)
        if original is None:
            raise IntegrityError(original_transaction_missing(domain.id))

        if original.status in _UNSETTLED_STATUSES:
            raise RemovalRejected("not_settled", transaction_not_settled(original.status))

        if in_refund_window(domain.added_at, now):
            existing = self.store.find_transaction_by_domain_and_type(
                domain.id, TransactionType.REFUND, TransactionStatus.SUCCESS
            )
            if existing is not None or domain.refund_transaction_id is not None:
                raise RemovalRejected("already_refunded", domain_already_refunded(domain.id))

        if domain.status == DomainStatus.REMOVED:
            raise RemovalRejected("already_removed", domain_already_removed(domain.id))

        return original
