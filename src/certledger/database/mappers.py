"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so ledger schema changes do not
leak into the saga and refund code.
"""

from datetime import datetime, UTC
from decimal import Decimal
from typing import Optional

from certledger.domain import entities as domain
from certledger.database.models import (
    Account as ORMAccount,
    AuditLog as ORMAuditLog,
    Client as ORMClient,
    Domain as ORMDomain,
    Partner as ORMPartner,
    PricingTier as ORMPricingTier,
    Transaction as ORMTransaction,
)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a timestamp to naive UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def _money(value) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(value).quantize(Decimal("0.01"))


def partner_to_domain(orm_partner: ORMPartner) -> domain.Partner:
    """Convert SQLAlchemy Partner model to domain Partner entity."""
    return domain.Partner(
        id=orm_partner.id,
        name=orm_partner.name,
        payment_type=domain.PaymentType(orm_partner.payment_type),
        credit_limit=_money(orm_partner.credit_limit),
        pricing_class=orm_partner.pricing_class,
        created_at=to_naive_utc(orm_partner.created_at),
    )


def client_to_domain(orm_client: ORMClient) -> domain.Client:
    """Convert SQLAlchemy Client model to domain Client entity."""
    return domain.Client(
        id=orm_client.id,
        partner_id=orm_client.partner_id,
        name=orm_client.name,
        created_at=to_naive_utc(orm_client.created_at),
    )


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        client_id=orm_account.client_id,
        name=orm_account.name,
        status=domain.AccountStatus(orm_account.status),
        subscription_years=orm_account.subscription_years,
        certificate_type=domain.CertificateType(orm_account.certificate_type),
        external_id=orm_account.external_id,
        start_date=to_naive_utc(orm_account.start_date),
        end_date=to_naive_utc(orm_account.end_date),
        created_at=to_naive_utc(orm_account.created_at),
    )


def domain_to_domain(orm_domain: ORMDomain) -> domain.Domain:
    """Convert SQLAlchemy Domain model to domain Domain entity."""
    return domain.Domain(
        id=orm_domain.id,
        account_id=orm_domain.account_id,
        name=orm_domain.name,
        domain_type=domain.DomainType(orm_domain.domain_type),
        status=domain.DomainStatus(orm_domain.status),
        price_charged=_money(orm_domain.price_charged),
        order_number=orm_domain.order_number,
        added_at=to_naive_utc(orm_domain.added_at),
        removed_at=to_naive_utc(orm_domain.removed_at),
        refund_transaction_id=orm_domain.refund_transaction_id,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        partner_id=orm_transaction.partner_id,
        account_id=orm_transaction.account_id,
        domain_id=orm_transaction.domain_id,
        type=domain.TransactionType(orm_transaction.type),
        status=domain.TransactionStatus(orm_transaction.status),
        amount=_money(orm_transaction.amount),
        description=orm_transaction.description,
        related_transaction_id=orm_transaction.related_transaction_id,
        order_number=orm_transaction.order_number,
        created_at=to_naive_utc(orm_transaction.created_at),
    )


def audit_entry_to_domain(orm_entry: ORMAuditLog) -> domain.AuditEntry:
    """Convert SQLAlchemy AuditLog model to domain AuditEntry entity."""
    return domain.AuditEntry(
        id=orm_entry.id,
        actor=orm_entry.actor,
        action=orm_entry.action,
        target_type=orm_entry.target_type,
        target_id=orm_entry.target_id,
        severity=domain.Severity(orm_entry.severity),
        created_at=to_naive_utc(orm_entry.created_at),
        details=dict(orm_entry.details or {}),
    )


def pricing_tier_to_domain(orm_tier: ORMPricingTier) -> domain.PricingTier:
    """Convert SQLAlchemy PricingTier model to domain PricingTier entity."""
    return domain.PricingTier(
        code=orm_tier.code,
        name=orm_tier.name,
        dv_single=_money(orm_tier.dv_single),
        dv_wildcard=_money(orm_tier.dv_wildcard),
        ov_single=_money(orm_tier.ov_single),
        ov_wildcard=_money(orm_tier.ov_wildcard),
        is_active=orm_tier.is_active,
    )
