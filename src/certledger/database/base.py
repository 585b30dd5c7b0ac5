"""Abstract ledger store interface."""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Optional

# Import entities directly to avoid circular import through domain/__init__.py
from certledger.domain.entities import (
    Account,
    AuditEntry,
    Client,
    Domain,
    DomainStatus,
    Partner,
    PricingTier,
    Severity,
    Transaction,
    TransactionStatus,
    TransactionType,
)


class LedgerStore(ABC):
    """Durable store for partners, accounts, domains, transactions and audit entries.

    All write operations raise ``LedgerError`` when the underlying storage
    fails or a constraint is violated.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Partner and client operations
    @abstractmethod
    def create_partner(
        self,
        name: str,
        payment_type: str,
        credit_limit: Optional[Decimal] = None,
        pricing_class: str = "STANDARD",
    ) -> int:
        """Create a partner. Returns partner ID."""
        pass

    @abstractmethod
    def get_partner(self, partner_id: int) -> Optional[Partner]:
        """Get partner by ID."""
        pass

    @abstractmethod
    def create_client(self, partner_id: int, name: str) -> int:
        """Create a client under a partner. Returns client ID."""
        pass

    @abstractmethod
    def get_client(self, client_id: int) -> Optional[Client]:
        """Get client by ID."""
        pass

    @abstractmethod
    def get_partner_for_account(self, account_id: int) -> Optional[Partner]:
        """Get the partner that owns an account through its client."""
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self,
        client_id: int,
        name: str,
        certificate_type: str,
        subscription_years: int,
        external_id: Optional[str] = None,
    ) -> int:
        """Create an account in pending_start status. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def update_account(self, account_id: int, fields: dict[str, Any]) -> None:
        """Update account columns named in ``fields`` (status, start_date, end_date, ...)."""
        pass

    # Domain operations
    @abstractmethod
    def insert_domain(
        self,
        account_id: int,
        name: str,
        domain_type: str,
        price_charged: Decimal,
        status: DomainStatus = DomainStatus.PENDING,
        added_at: Optional[datetime] = None,
    ) -> Domain:
        """Insert a domain row."""
        pass

    @abstractmethod
    def get_domain(self, domain_id: int) -> Optional[Domain]:
        """Get domain by ID."""
        pass

    @abstractmethod
    def list_domains(self, account_id: int, include_removed: bool = False) -> list[Domain]:
        """List domains of an account, newest first."""
        pass

    @abstractmethod
    def update_domain_status(
        self,
        domain_id: int,
        status: DomainStatus,
        order_number: Optional[str] = None,
        removed_at: Optional[datetime] = None,
    ) -> None:
        """Update domain status.

        ``removed_at`` is required when ``status`` is removed and cleared
        otherwise, so it is set exactly when the domain is removed.
        """
        pass

    @abstractmethod
    def delete_domain(self, domain_id: int) -> None:
        """Physically delete a domain that has no transactions (reservation compensation)."""
        pass

    @abstractmethod
    def count_active_domains(self, account_id: int) -> int:
        """Count domains of an account in active status."""
        pass

    # Transaction operations
    @abstractmethod
    def insert_transaction(
        self,
        partner_id: int,
        account_id: int,
        domain_id: int,
        type: TransactionType,
        status: TransactionStatus,
        amount: Decimal,
        description: Optional[str] = None,
        related_transaction_id: Optional[int] = None,
        order_number: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> Transaction:
        """Insert a ledger transaction."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def update_transaction_status(
        self,
        transaction_id: int,
        status: TransactionStatus,
        description: Optional[str] = None,
        order_number: Optional[str] = None,
    ) -> None:
        """Update transaction status, optionally with description and order number."""
        pass

    @abstractmethod
    def find_transaction_by_domain_and_type(
        self,
        domain_id: int,
        type: TransactionType,
        status: Optional[TransactionStatus] = None,
    ) -> Optional[Transaction]:
        """Find the transaction of a type for a domain, optionally by status."""
        pass

    @abstractmethod
    def sum_transactions(
        self,
        partner_id: int,
        type: TransactionType,
        statuses: Iterable[TransactionStatus],
    ) -> Decimal:
        """Sum amounts of a partner's transactions of one type in the given statuses."""
        pass

    @abstractmethod
    def settle_refund(
        self,
        original: Transaction,
        amount: Decimal,
        description: str,
        created_at: Optional[datetime] = None,
    ) -> Transaction:
        """Record a refund for ``original`` in one database transaction.

        Inserts the successful refund linked to the original, flips the
        original to refunded and links the domain to the refund. Either all
        three writes happen or none.
        """
        pass

    @abstractmethod
    def count_successful_refunds(self, account_id: int, since: datetime) -> int:
        """Count successful refunds for an account created at or after ``since``."""
        pass

    @abstractmethod
    def list_stale_pending_transactions(self, older_than: datetime, limit: int = 50) -> list[Transaction]:
        """List add_domain transactions still pending_api and created before ``older_than``."""
        pass

    # Audit operations
    @abstractmethod
    def append_audit(
        self,
        actor: str,
        action: str,
        target_type: str,
        target_id: Optional[int],
        details: dict[str, Any],
        severity: Severity = Severity.INFO,
        created_at: Optional[datetime] = None,
    ) -> AuditEntry:
        """Append an audit entry, stamped with ``created_at`` or the current time."""
        pass

    @abstractmethod
    def list_audit_entries(
        self,
        action: Optional[str] = None,
        target_type: Optional[str] = None,
        target_id: Optional[int] = None,
    ) -> list[AuditEntry]:
        """List audit entries in insertion order with optional filters."""
        pass

    # Pricing operations
    @abstractmethod
    def create_pricing_tier(self, tier: PricingTier) -> None:
        """Create or replace a pricing tier by code."""
        pass

    @abstractmethod
    def get_pricing_tier(self, code: str) -> Optional[PricingTier]:
        """Get pricing tier by code."""
        pass

    @abstractmethod
    def list_pricing_tiers(self) -> list[PricingTier]:
        """List pricing tiers ordered by code."""
        pass
