"""Partner and client domain service."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from certledger.database.base import LedgerStore
from certledger.domain.credit import CreditGuard
from certledger.domain.entities import Client, Partner, PaymentType
from certledger.domain.errors import NotFoundError, ValidationError, partner_not_found


@dataclass(frozen=True)
class CreditSummary:
    """Credit position of a partner. ``available`` is None for post-paid partners."""

    partner_id: int
    payment_type: PaymentType
    credit_limit: Optional[Decimal]
    used: Decimal
    available: Optional[Decimal]


class PartnerService:
    """Service for managing partners and their clients."""

    def __init__(self, store: LedgerStore, credit: Optional[CreditGuard] = None):
        self.store = store
        self.credit = credit or CreditGuard(store)

    def create_partner(
        self,
        name: str,
        payment_type: str = PaymentType.POST_PAID,
        credit_limit: Optional[Decimal] = None,
        pricing_class: str = "STANDARD",
    ) -> int:
        """Create a partner.

        Args:
            name: Partner name
            payment_type: post_paid or deposit
            credit_limit: Required for deposit partners
            pricing_class: Pricing tier code

        Returns:
            Partner ID

        Raises:
            ValidationError: If the name is empty, the payment type is unknown
                or a deposit partner has no credit limit
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Partner name cannot be empty")

        try:
            payment = PaymentType(str(payment_type).strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown payment type '{payment_type}' (expected post_paid or deposit)")

        if payment == PaymentType.DEPOSIT and credit_limit is None:
            raise ValidationError("Deposit partners require a credit limit")
        if credit_limit is not None and credit_limit < 0:
            raise ValidationError("Credit limit cannot be negative")

        return self.store.create_partner(
            name=name,
            payment_type=payment,
            credit_limit=credit_limit,
            pricing_class=pricing_class.strip().upper(),
        )

    def get_partner(self, partner_id: int) -> Partner:
        """Get partner by ID.

        Raises:
            NotFoundError: If the partner does not exist
        """
        partner = self.store.get_partner(partner_id)
        if partner is None:
            raise NotFoundError(partner_not_found(partner_id))
        return partner

    def create_client(self, partner_id: int, name: str) -> int:
        """Create a client under a partner. Returns client ID."""
        self.get_partner(partner_id)
        name = (name or "").strip()
        if not name:
            raise ValidationError("Client name cannot be empty")
        return self.store.create_client(partner_id=partner_id, name=name)

    def get_client(self, client_id: int) -> Optional[Client]:
        return self.store.get_client(client_id)

    def credit_summary(self, partner_id: int) -> CreditSummary:
        """Return used and available credit for a partner."""
        partner = self.get_partner(partner_id)
        return CreditSummary(
            partner_id=partner.id,
            payment_type=partner.payment_type,
            credit_limit=partner.credit_limit,
            used=self.credit.used_credit(partner),
            available=self.credit.available_credit(partner),
        )
