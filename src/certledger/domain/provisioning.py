"""Domain-provisioning billing saga.

Each domain in a batch moves through reserve, execute and reconcile on its
own: a ``pending_api`` reservation is written before the provider is called,
and the provider's answer is then settled into the ledger. One domain's
failure never affects the others.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional, Sequence

import structlog

from certledger.database.base import LedgerStore
from certledger.domain.credit import CreditGuard
from certledger.domain.entities import (
    Account,
    AccountStatus,
    DomainStatus,
    DomainType,
    Partner,
    TransactionStatus,
    TransactionType,
    utcnow,
)
from certledger.domain.errors import (
    ConflictError,
    LedgerError,
    NotFoundError,
    ProviderError,
    TransientError,
    ValidationError,
    account_not_found,
    account_not_writable,
)
from certledger.domain.lifecycle import ACTIVATABLE_STATUSES, AccountLifecycle
from certledger.domain.pricing import PricingService
from certledger.provider.client import ProvisioningClient

logger = structlog.get_logger(__name__)

RESERVATION_FAILED = "ledger reservation failed"
RECONCILE_FAILED = "ledger reconcile failed"

_LABEL = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$")
_BLOCKED_STATUSES = frozenset({AccountStatus.SUSPENDED, AccountStatus.TERMINATED})


@dataclass(frozen=True)
class DomainRequest:
    """A domain a caller wants added. ``type`` is inferred from a ``*.`` prefix when omitted."""

    name: str
    type: Optional[str] = None


@dataclass(frozen=True)
class DomainResult:
    """Per-domain outcome of a batch."""

    domain: str
    success: bool
    price: Decimal
    error: Optional[str] = None
    domain_id: Optional[int] = None
    transaction_id: Optional[int] = None
    order_number: Optional[str] = None


@dataclass
class BatchResult:
    """Accumulated outcome of a batch submission."""

    account_id: int
    results: list[DomainResult] = field(default_factory=list)
    activated: bool = False

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def total_charged(self) -> Decimal:
        return sum((r.price for r in self.results if r.success), Decimal("0.00"))


def is_valid_hostname(name: str) -> bool:
    """Check a host name (without wildcard prefix) has at least two valid labels."""
    if not name or len(name) > 253:
        return False
    labels = name.split(".")
    return len(labels) >= 2 and all(_LABEL.match(label) for label in labels)


def normalize_request(request: DomainRequest) -> tuple[str, DomainType]:
    """Validate one request and return its normalized name and type.

    Raises:
        ValidationError: If the name or type is invalid
    """
    name = (request.name or "").strip().lower()
    if not name:
        raise ValidationError("Domain name cannot be empty")

    has_wildcard_prefix = name.startswith("*.")
    if request.type is None:
        domain_type = DomainType.WILDCARD if has_wildcard_prefix else DomainType.SINGLE
    else:
        try:
            domain_type = DomainType(str(request.type).strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown domain type '{request.type}' (expected single or wildcard)")

    if domain_type == DomainType.WILDCARD and not has_wildcard_prefix:
        raise ValidationError(f"Wildcard domain '{name}' must start with '*.'")
    if domain_type == DomainType.SINGLE and has_wildcard_prefix:
        raise ValidationError(f"Domain '{name}' starts with '*.' but type is single")

    host = name[2:] if has_wildcard_prefix else name
    if not is_valid_hostname(host):
        raise ValidationError(f"Invalid domain name '{name}'")

    return name, domain_type


class ProvisioningSaga:
    """Adds batches of domains to an account and bills the owning partner."""

    def __init__(
        self,
        store: LedgerStore,
        provider: ProvisioningClient,
        pricing: Optional[PricingService] = None,
        credit: Optional[CreditGuard] = None,
        lifecycle: Optional[AccountLifecycle] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.provider = provider
        self.pricing = pricing or PricingService(store)
        self.credit = credit or CreditGuard(store)
        self.lifecycle = lifecycle or AccountLifecycle(store, clock=clock)
        self.clock = clock

    def submit_domain_batch(self, account_id: int, requests: Sequence[DomainRequest], actor: str) -> BatchResult:
        """Provision a batch of domains for one account.

        The whole batch is validated and credit-checked before anything is
        written. Domains are then processed one at a time.

        Args:
            account_id: Account receiving the domains
            requests: Domains to add
            actor: Who is submitting the batch

        Returns:
            BatchResult with one DomainResult per request, in request order

        Raises:
            ValidationError: If any request is invalid or the account has no provider ID
            NotFoundError: If the account or its partner does not exist
            ConflictError: If the account is suspended or terminated
            CreditRejected: If a deposit partner cannot cover the batch total
        """
        if not requests:
            raise ValidationError("At least one domain is required")

        normalized = [normalize_request(r) for r in requests]
        seen: set[str] = set()
        for name, _ in normalized:
            if name in seen:
                raise ValidationError(f"Domain '{name}' appears more than once in the batch")
            seen.add(name)

        account = self.store.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        if account.status in _BLOCKED_STATUSES:
            raise ConflictError(account_not_writable(account_id, account.status))
        if not account.external_id:
            raise ValidationError(f"Account {account_id} has no provider account ID")

        partner = self.store.get_partner_for_account(account_id)
        if partner is None:
            raise NotFoundError(f"Partner for account {account_id} not found")

        prices = [
            self.pricing.price_for(partner, account.certificate_type, domain_type == DomainType.WILDCARD)
            for _, domain_type in normalized
        ]
        self.credit.check(partner, sum(prices, Decimal("0.00")))

        batch = BatchResult(account_id=account_id)
        for (name, domain_type), price in zip(normalized, prices):
            batch.results.append(self._provision(account, partner, name, domain_type, price, actor))

        logger.info(
            "Domain batch processed",
            account_id=account_id,
            succeeded=batch.succeeded,
            failed=batch.failed,
        )

        if batch.succeeded and account.status in ACTIVATABLE_STATUSES:
            batch.activated = self.lifecycle.activate(account, actor, triggered_by="add_domain")

        return batch

    def _provision(
        self,
        account: Account,
        partner: Partner,
        name: str,
        domain_type: DomainType,
        price: Decimal,
        actor: str,
    ) -> DomainResult:
        now = self.clock()

        # Reserve
        try:
            domain = self.store.insert_domain(account.id, name, domain_type, price, added_at=now)
        except LedgerError as e:
            logger.error("Domain reservation failed", account_id=account.id, domain=name, error=str(e))
            return DomainResult(domain=name, success=False, price=price, error=RESERVATION_FAILED)

        try:
            txn = self.store.insert_transaction(
                partner_id=partner.id,
                account_id=account.id,
                domain_id=domain.id,
                type=TransactionType.ADD_DOMAIN,
                status=TransactionStatus.PENDING_API,
                amount=price,
                description=f"Adding domain: {name}",
                created_at=now,
            )
        except LedgerError as e:
            logger.error("Transaction reservation failed", domain_id=domain.id, domain=name, error=str(e))
            self._release(domain.id)
            return DomainResult(domain=name, success=False, price=price, error=RESERVATION_FAILED)

        # Execute
        try:
            result = self.provider.add_domain(account.external_id, name, idempotency_token=str(txn.id))
        except TransientError as e:
            return self._record_failure(name, price, domain.id, txn.id, f"API Error: {e}", str(e))
        except ProviderError as e:
            return self._record_failure(name, price, domain.id, txn.id, f"Failed: {e}", str(e))

        # Reconcile
        try:
            self.store.update_domain_status(domain.id, DomainStatus.ACTIVE, order_number=result.order_number)
            self.store.update_transaction_status(
                txn.id, TransactionStatus.SUCCESS, order_number=result.order_number
            )
        except LedgerError as e:
            logger.error(
                "Reconcile failed after provider success; left for sweeper",
                domain_id=domain.id,
                transaction_id=txn.id,
                order_number=result.order_number,
                error=str(e),
            )
            return DomainResult(
                domain=name,
                success=False,
                price=price,
                error=RECONCILE_FAILED,
                domain_id=domain.id,
                transaction_id=txn.id,
                order_number=result.order_number,
            )

        # Audit
        try:
            self.store.append_audit(
                actor,
                "add_domain",
                "domain",
                domain.id,
                {
                    "domain": name,
                    "domain_type": str(domain_type),
                    "account_id": account.id,
                    "price": str(price),
                    "order_number": result.order_number,
                    "transaction_id": txn.id,
                    "already_existed": result.already_existed,
                },
                created_at=now,
            )
        except LedgerError as e:
            logger.critical(
                "Audit entry for added domain could not be written",
                domain_id=domain.id,
                transaction_id=txn.id,
                error=str(e),
            )

        logger.info("Domain added", domain_id=domain.id, domain=name, order_number=result.order_number)
        return DomainResult(
            domain=name,
            success=True,
            price=price,
            domain_id=domain.id,
            transaction_id=txn.id,
            order_number=result.order_number,
        )

    def _release(self, domain_id: int) -> None:
        """Undo a domain reservation whose transaction could not be written."""
        try:
            self.store.delete_domain(domain_id)
        except LedgerError as e:
            logger.critical("Could not release domain reservation", domain_id=domain_id, error=str(e))
            try:
                self.store.update_domain_status(domain_id, DomainStatus.FAILED)
            except LedgerError as inner:
                logger.critical("Could not mark orphaned domain failed", domain_id=domain_id, error=str(inner))

    def _record_failure(
        self,
        name: str,
        price: Decimal,
        domain_id: int,
        transaction_id: int,
        description: str,
        message: str,
    ) -> DomainResult:
        logger.warning("Domain add rejected by provider", domain_id=domain_id, domain=name, error=message)
        try:
            self.store.update_domain_status(domain_id, DomainStatus.FAILED)
            self.store.update_transaction_status(transaction_id, TransactionStatus.FAILED, description=description)
        except LedgerError as e:
            logger.error(
                "Could not record provider failure; left for sweeper",
                domain_id=domain_id,
                transaction_id=transaction_id,
                error=str(e),
            )
        return DomainResult(
            domain=name,
            success=False,
            price=price,
            error=message,
            domain_id=domain_id,
            transaction_id=transaction_id,
        )
