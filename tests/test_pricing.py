"""Tests for PricingService."""

from dataclasses import replace
from decimal import Decimal

from certledger.domain.entities import CertificateType
from certledger.domain.errors import LedgerError
from certledger.domain.pricing import DEFAULT_PRICE_SINGLE, DEFAULT_PRICE_WILDCARD, INITIAL_TIERS


class TestPriceFor:
    """Tests for price resolution."""

    def test_missing_tier_falls_back_to_defaults(self, pricing_service, post_paid_partner):
        assert pricing_service.price_for(post_paid_partner, CertificateType.DV, False) == DEFAULT_PRICE_SINGLE
        assert pricing_service.price_for(post_paid_partner, CertificateType.OV, True) == DEFAULT_PRICE_WILDCARD

    def test_tier_prices_by_certificate_type(self, pricing_service, partner_service):
        pricing_service.initialize_tiers()
        partner = partner_service.get_partner(partner_service.create_partner(name="Gold", pricing_class="gold"))

        assert pricing_service.price_for(partner, CertificateType.DV, False) == Decimal("40.00")
        assert pricing_service.price_for(partner, CertificateType.DV, True) == Decimal("120.00")
        assert pricing_service.price_for(partner, CertificateType.OV, False) == Decimal("200.00")
        assert pricing_service.price_for(partner, CertificateType.OV, True) == Decimal("400.00")

    def test_inactive_tier_falls_back(self, temp_store, pricing_service, partner_service):
        silver = next(t for t in INITIAL_TIERS if t.code == "SILVER")
        temp_store.create_pricing_tier(replace(silver, is_active=False))
        partner = partner_service.get_partner(partner_service.create_partner(name="Silver", pricing_class="SILVER"))

        assert pricing_service.price_for(partner, CertificateType.OV, False) == DEFAULT_PRICE_SINGLE

    def test_lookup_error_falls_back(self, temp_store, pricing_service, post_paid_partner, monkeypatch):
        def broken(code):
            raise LedgerError("database is locked")

        monkeypatch.setattr(temp_store, "get_pricing_tier", broken)

        assert pricing_service.price_for(post_paid_partner, CertificateType.DV, True) == DEFAULT_PRICE_WILDCARD


class TestInitializeTiers:
    """Tests for seeding pricing tiers."""

    def test_initialize_is_repeatable(self, pricing_service):
        pricing_service.initialize_tiers()
        pricing_service.initialize_tiers()

        tiers = pricing_service.list_tiers()
        assert [t.code for t in tiers] == ["GOLD", "SILVER", "STANDARD"]
        standard = next(t for t in tiers if t.code == "STANDARD")
        assert standard.ov_wildcard == Decimal("500.00")
