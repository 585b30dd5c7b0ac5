"""SQLAlchemy models for the certledger database."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    create_engine,
    text,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

from certledger.domain.entities import utcnow

Base = declarative_base()


class PricingTier(Base):
    """Annual base pricing per pricing class."""

    __tablename__ = "pricing_tiers"

    id = Column(Integer, primary_key=True)
    code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    dv_single = Column(Numeric(15, 2), nullable=False)
    dv_wildcard = Column(Numeric(15, 2), nullable=False)
    ov_single = Column(Numeric(15, 2), nullable=False)
    ov_wildcard = Column(Numeric(15, 2), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


class Partner(Base):
    """Reseller partner model."""

    __tablename__ = "partners"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    payment_type = Column(String, nullable=False, default="post_paid")
    credit_limit = Column(Numeric(15, 2), nullable=True)
    pricing_class = Column(String, nullable=False, default="STANDARD")
    created_at = Column(DateTime, default=utcnow, nullable=False)

    clients = relationship("Client", back_populates="partner")


class Client(Base):
    """Partner's end customer model."""

    __tablename__ = "clients"

    id = Column(Integer, primary_key=True)
    partner_id = Column(Integer, ForeignKey("partners.id"), nullable=False)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    partner = relationship("Partner", back_populates="clients")
    accounts = relationship("Account", back_populates="client")


class Account(Base):
    """CA account model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)
    name = Column(String, nullable=False)
    status = Column(String, nullable=False, default="pending_start")
    subscription_years = Column(Integer, nullable=False, default=1)
    certificate_type = Column(String, nullable=False, default="DV")
    external_id = Column(String, nullable=True)
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    client = relationship("Client", back_populates="accounts")
    domains = relationship("Domain", back_populates="account")


class Domain(Base):
    """Domain model. Rows are never deleted once a transaction references them."""

    __tablename__ = "domains"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    name = Column(String, nullable=False)
    domain_type = Column(String, nullable=False)
    status = Column(String, nullable=False, default="pending")
    price_charged = Column(Numeric(15, 2), nullable=False)
    order_number = Column(String, nullable=True)
    added_at = Column(DateTime, default=utcnow, nullable=False)
    removed_at = Column(DateTime, nullable=True)
    refund_transaction_id = Column(Integer, nullable=True)

    account = relationship("Account", back_populates="domains")


class Transaction(Base):
    """Ledger transaction model."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    partner_id = Column(Integer, ForeignKey("partners.id"), nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    domain_id = Column(Integer, ForeignKey("domains.id"), nullable=False)
    type = Column(String, nullable=False)
    status = Column(String, nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    description = Column(String, nullable=True)
    related_transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=True)
    order_number = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # One add_domain per domain and one successful refund per domain
    __table_args__ = (
        Index(
            "uq_add_domain_per_domain",
            "domain_id",
            unique=True,
            sqlite_where=text("type = 'add_domain'"),
            postgresql_where=text("type = 'add_domain'"),
        ),
        Index(
            "uq_refund_per_domain",
            "domain_id",
            unique=True,
            sqlite_where=text("type = 'refund' AND status = 'success'"),
            postgresql_where=text("type = 'refund' AND status = 'success'"),
        ),
        Index("ix_transactions_partner_status", "partner_id", "status"),
    )


class AuditLog(Base):
    """Append-only audit log model."""

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True)
    actor = Column(String, nullable=False)
    action = Column(String, nullable=False)
    target_type = Column(String, nullable=False)
    target_id = Column(Integer, nullable=True)
    severity = Column(String, nullable=False, default="info")
    details = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=utcnow, nullable=False)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
