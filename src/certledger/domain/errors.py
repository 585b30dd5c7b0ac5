"""Shared domain error messages and error types."""

from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum
from typing import Any, Optional


class FailureKind(StrEnum):
    """Closed set of ways a provider call can fail."""

    ALREADY_EXISTS = "already_exists"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    TIMEOUT = "timeout"
    UNREACHABLE = "unreachable"
    UNAUTHORIZED = "unauthorized"
    MALFORMED = "malformed"
    SUBSCRIPTION_EXPIRED = "subscription_expired"
    REJECTED = "rejected"


RETRIABLE_KINDS = frozenset(
    {
        FailureKind.RATE_LIMITED,
        FailureKind.SERVER_ERROR,
        FailureKind.TIMEOUT,
        FailureKind.UNREACHABLE,
    }
)


@dataclass(frozen=True)
class ProviderFailure:
    """A classified provider failure."""

    kind: FailureKind
    message: str
    status_code: Optional[int] = None
    detail: Optional[Any] = None

    @property
    def retriable(self) -> bool:
        return self.kind in RETRIABLE_KINDS


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input, rejected before any write."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Operation conflicts with the current state of an entity."""


class RemovalRejected(ConflictError):
    """Domain removal refused by a business rule.

    ``reason`` is one of ``not_settled``, ``already_refunded`` or
    ``already_removed``.
    """

    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason


class CreditRejected(DomainError):
    """Deposit partner lacks the credit for a proposed charge."""

    def __init__(self, required: Decimal, available: Decimal):
        self.required = required
        self.available = available
        self.shortfall = required - available
        super().__init__(insufficient_credit(required, available))


class LedgerError(DomainError):
    """Ledger store unavailable or a constraint was violated."""


class ProviderError(DomainError):
    """Terminal rejection from the certificate provider."""

    def __init__(self, failure: ProviderFailure):
        super().__init__(failure.message)
        self.failure = failure

    @property
    def kind(self):
        return self.failure.kind


class TransientError(ProviderError):
    """Retriable provider failure (timeout, 5xx, rate limit).

    Once retries are exhausted it is handled as a ProviderError.
    """


class IntegrityError(DomainError):
    """Ledger data is inconsistent, e.g. a domain without its add_domain transaction."""


def partner_not_found(partner_id: int) -> str:
    return f"Partner {partner_id} not found"


def client_not_found(client_id: int) -> str:
    return f"Client {client_id} not found"


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def domain_not_found(domain_id: int) -> str:
    """Return message for missing domain."""
    return f"Domain {domain_id} not found"


def insufficient_credit(required: Decimal, available: Decimal) -> str:
    """Return message when a deposit partner cannot cover a charge."""
    return (
        f"Insufficient credit limit: required ${required:.2f}, "
        f"available ${available:.2f}, short by ${required - available:.2f}"
    )


def original_transaction_missing(domain_id: int) -> str:
    return f"Cannot find original add_domain transaction for domain {domain_id}"


def transaction_not_settled(status: str) -> str:
    return (
        f'Cannot refund: original transaction status is "{status}". '
        "Only successful transactions can be refunded."
    )


def domain_already_refunded(domain_id: int) -> str:
    return f"Domain {domain_id} has already been refunded"


def domain_already_removed(domain_id: int) -> str:
    return f"Domain {domain_id} has already been removed"


def account_not_writable(account_id: int, status: str) -> str:
    return f"Account {account_id} is {status}; domains cannot be added"


def invalid_account_transition(account_id: int, status: str, action: str, reason: Optional[str] = None) -> str:
    """Return message for a refused administrative account action."""
    message = f"Cannot {action} account {account_id} in status '{status}'"
    if reason:
        message = f"{message}: {reason}"
    return message
