"""Domain model entities for certledger.

These are pure data classes representing billing concepts, independent of
database schema. Status fields use string enums so values round-trip through
the ledger unchanged.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from decimal import Decimal
from enum import StrEnum
from typing import Any, Optional


def utcnow() -> datetime:
    """Return the current time as naive UTC, the form the ledger stores."""
    return datetime.now(UTC).replace(tzinfo=None)


class PaymentType(StrEnum):
    POST_PAID = "post_paid"
    DEPOSIT = "deposit"


class CertificateType(StrEnum):
    DV = "DV"
    OV = "OV"


class AccountStatus(StrEnum):
    PENDING_START = "pending_start"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"
    TERMINATED = "terminated"


class DomainType(StrEnum):
    SINGLE = "single"
    WILDCARD = "wildcard"


class DomainStatus(StrEnum):
    PENDING = "pending"
    ACTIVE = "active"
    FAILED = "failed"
    REMOVED = "removed"


class TransactionType(StrEnum):
    ADD_DOMAIN = "add_domain"
    REFUND = "refund"


class TransactionStatus(StrEnum):
    PENDING_API = "pending_api"
    SUCCESS = "success"
    FAILED = "failed"
    REFUNDED = "refunded"


class Severity(StrEnum):
    INFO = "info"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class Partner:
    """Reseller partner billing identity."""

    id: int
    name: str
    payment_type: PaymentType
    credit_limit: Optional[Decimal]
    pricing_class: str
    created_at: datetime


@dataclass(frozen=True)
class Client:
    """End customer of a partner."""

    id: int
    partner_id: int
    name: str
    created_at: datetime


@dataclass(frozen=True)
class Account:
    """Provisioned CA account scoped to one client."""

    id: int
    client_id: int
    name: str
    status: AccountStatus
    subscription_years: int
    certificate_type: CertificateType
    external_id: Optional[str]
    start_date: Optional[datetime]
    end_date: Optional[datetime]
    created_at: datetime


@dataclass(frozen=True)
class Domain:
    """Host name provisioned under an account."""

    id: int
    account_id: int
    name: str
    domain_type: DomainType
    status: DomainStatus
    price_charged: Decimal
    order_number: Optional[str]
    added_at: datetime
    removed_at: Optional[datetime]
    refund_transaction_id: Optional[int]

    @property
    def is_wildcard(self) -> bool:
        return self.domain_type == DomainType.WILDCARD


@dataclass(frozen=True)
class Transaction:
    """Ledger entry for a domain addition or a refund."""

    id: int
    partner_id: int
    account_id: int
    domain_id: int
    type: TransactionType
    status: TransactionStatus
    amount: Decimal
    description: Optional[str]
    related_transaction_id: Optional[int]
    order_number: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class AuditEntry:
    """Append-only record of a state-changing action."""

    id: int
    actor: str
    action: str
    target_type: str
    target_id: Optional[int]
    severity: Severity
    created_at: datetime
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PricingTier:
    """Annual base prices for one pricing class."""

    code: str
    name: str
    dv_single: Decimal
    dv_wildcard: Decimal
    ov_single: Decimal
    ov_wildcard: Decimal
    is_active: bool = True

    def price(self, certificate_type: CertificateType, is_wildcard: bool) -> Decimal:
        """Return the price for a certificate type and domain shape."""
        if certificate_type == CertificateType.OV:
            return self.ov_wildcard if is_wildcard else self.ov_single
        return self.dv_wildcard if is_wildcard else self.dv_single
