"""Credit gate for deposit partners."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import structlog

from certledger.database.base import LedgerStore
from certledger.domain.entities import Partner, PaymentType, TransactionStatus, TransactionType
from certledger.domain.errors import CreditRejected

logger = structlog.get_logger(__name__)

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class CreditDecision:
    """Outcome of a credit check.

    ``available`` is None for post-paid partners, which have no limit.
    """

    allowed: bool
    required: Decimal
    available: Optional[Decimal]
    used: Decimal
    shortfall: Decimal = ZERO


class CreditGuard:
    """Computes available credit and authorizes proposed charges.

    Reads are a snapshot: two batches checked at the same time can both pass
    and together overshoot the limit.
    """

    def __init__(self, store: LedgerStore):
        self.store = store

    def used_credit(self, partner: Partner) -> Decimal:
        """Return committed spend: reserved and settled additions minus refunds."""
        charged = self.store.sum_transactions(
            partner.id,
            TransactionType.ADD_DOMAIN,
            [TransactionStatus.SUCCESS, TransactionStatus.PENDING_API],
        )
        refunded = self.store.sum_transactions(
            partner.id, TransactionType.REFUND, [TransactionStatus.SUCCESS]
        )
        return charged - refunded

    def available_credit(self, partner: Partner) -> Optional[Decimal]:
        """Return remaining credit, or None when the partner is post-paid."""
        if partner.payment_type != PaymentType.DEPOSIT:
            return None
        limit = partner.credit_limit if partner.credit_limit is not None else ZERO
        return limit - self.used_credit(partner)

    def authorize(self, partner: Partner, proposed_charge: Decimal) -> CreditDecision:
        """Decide whether a partner may take on a charge.

        Args:
            partner: Partner being charged
            proposed_charge: Total of the charges about to be reserved

        Returns:
            CreditDecision; never raises for a rejection
        """
        if partner.payment_type != PaymentType.DEPOSIT:
            return CreditDecision(allowed=True, required=proposed_charge, available=None, used=ZERO)

        used = self.used_credit(partner)
        limit = partner.credit_limit if partner.credit_limit is not None else ZERO
        available = limit - used

        if proposed_charge > available:
            logger.info(
                "Credit rejected",
                partner_id=partner.id,
                required=str(proposed_charge),
                available=str(available),
            )
            return CreditDecision(
                allowed=False,
                required=proposed_charge,
                available=available,
                used=used,
                shortfall=proposed_charge - available,
            )

        return CreditDecision(allowed=True, required=proposed_charge, available=available, used=used)

    def check(self, partner: Partner, proposed_charge: Decimal) -> CreditDecision:
        """Authorize a charge, raising on rejection.

        Raises:
            CreditRejected: If a deposit partner lacks the credit
        """
        decision = self.authorize(partner, proposed_charge)
        if not decision.allowed:
            raise CreditRejected(decision.required, decision.available)
        return decision
