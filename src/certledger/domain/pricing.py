"""Pricing service for domain additions."""

from decimal import Decimal

import structlog

from certledger.database.base import LedgerStore
from certledger.domain.entities import CertificateType, Partner, PricingTier
from certledger.domain.errors import LedgerError

logger = structlog.get_logger(__name__)

DEFAULT_PRICE_SINGLE = Decimal("50.00")
DEFAULT_PRICE_WILDCARD = Decimal("150.00")

INITIAL_TIERS = [
    PricingTier(
        code="STANDARD",
        name="Standard",
        dv_single=Decimal("50.00"),
        dv_wildcard=Decimal("150.00"),
        ov_single=Decimal("250.00"),
        ov_wildcard=Decimal("500.00"),
    ),
    PricingTier(
        code="SILVER",
        name="Silver",
        dv_single=Decimal("45.00"),
        dv_wildcard=Decimal("135.00"),
        ov_single=Decimal("225.00"),
        ov_wildcard=Decimal("450.00"),
    ),
    PricingTier(
        code="GOLD",
        name="Gold",
        dv_single=Decimal("40.00"),
        dv_wildcard=Decimal("120.00"),
        ov_single=Decimal("200.00"),
        ov_wildcard=Decimal("400.00"),
    ),
]


class PricingService:
    """Resolves the annual price of a domain for a partner."""

    def __init__(self, store: LedgerStore):
        """Initialize pricing service.

        Args:
            store: Ledger store holding the pricing tiers
        """
        self.store = store

    def price_for(self, partner: Partner, certificate_type: CertificateType, is_wildcard: bool) -> Decimal:
        """Return the price of one domain under the partner's pricing class.

        Falls back to the default single/wildcard prices when the tier is
        missing, inactive or cannot be read.
        """
        try:
            tier = self.store.get_pricing_tier(partner.pricing_class)
        except LedgerError as e:
            logger.warning("Pricing tier lookup failed, using defaults", code=partner.pricing_class, error=str(e))
            tier = None

        if tier is None or not tier.is_active:
            return DEFAULT_PRICE_WILDCARD if is_wildcard else DEFAULT_PRICE_SINGLE

        return tier.price(certificate_type, is_wildcard)

    def initialize_tiers(self) -> list[PricingTier]:
        """Create or refresh the default pricing tiers.

        Returns:
            List of tiers written
        """
        for tier in INITIAL_TIERS:
            self.store.create_pricing_tier(tier)
        return list(INITIAL_TIERS)

    def list_tiers(self) -> list[PricingTier]:
        return self.store.list_pricing_tiers()
