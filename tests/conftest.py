"""Shared pytest fixtures for certledger tests."""

import tempfile
import os
from collections import defaultdict
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from certledger.database.factories import create_sqlite_store
from certledger.domain.account import AccountService
from certledger.domain.credit import CreditGuard
from certledger.domain.entities import CertificateType, PaymentType
from certledger.domain.lifecycle import AccountLifecycle
from certledger.domain.partner import PartnerService
from certledger.domain.pricing import PricingService
from certledger.domain.provisioning import ProvisioningSaga
from certledger.domain.refund import RefundEngine
from certledger.domain.sweeper import PendingSweeper
from certledger.provider.client import AddDomainResult


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeProvider:
    """In-memory provider with scripted failures and a call log."""

    mock_mode = True

    def __init__(self):
        self.domains: dict[str, set[str]] = defaultdict(set)
        self.calls: list[tuple] = []
        self.add_failures: dict[str, Exception] = {}
        self.remove_failure: Exception | None = None
        self.list_failure: Exception | None = None
        self._order = 1000

    def add_domain(self, external_id, domain_name, idempotency_token):
        self.calls.append(("add_domain", external_id, domain_name, idempotency_token))
        if domain_name in self.add_failures:
            raise self.add_failures[domain_name]
        already = domain_name in self.domains[external_id]
        self.domains[external_id].add(domain_name)
        self._order += 1
        return AddDomainResult(order_number=str(self._order), already_existed=already)

    def remove_domain(self, external_id, domain_name):
        self.calls.append(("remove_domain", external_id, domain_name))
        if self.remove_failure is not None:
            raise self.remove_failure
        self.domains[external_id].discard(domain_name)

    def list_domains(self, external_id):
        self.calls.append(("list_domains", external_id))
        if self.list_failure is not None:
            raise self.list_failure
        return sorted(self.domains[external_id])

    def suspend_account(self, external_id):
        self.calls.append(("suspend_account", external_id))

    def unsuspend_account(self, external_id):
        self.calls.append(("unsuspend_account", external_id))

    def deactivate_account(self, external_id):
        self.calls.append(("deactivate_account", external_id))

    def close(self):
        pass

    def called(self, method: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == method]


@pytest.fixture
def temp_store():
    """Create a temporary ledger store for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    store = create_sqlite_store(database_path=db_path)
    # Store the path for tests that need it
    store.database_path = db_path
    store.connect()
    store.initialize_schema()

    yield store

    store.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def clock():
    """Fixed clock at a known instant."""
    return FakeClock(datetime(2025, 3, 1, 12, 0, 0))


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def lifecycle(temp_store, clock):
    return AccountLifecycle(temp_store, clock=clock)


@pytest.fixture
def saga(temp_store, provider, lifecycle, clock):
    """Create a ProvisioningSaga wired to the fake provider and clock."""
    return ProvisioningSaga(temp_store, provider, lifecycle=lifecycle, clock=clock)


@pytest.fixture
def refund_engine(temp_store, provider, lifecycle, clock):
    """Create a RefundEngine wired to the fake provider and clock."""
    return RefundEngine(temp_store, provider=provider, lifecycle=lifecycle, clock=clock)


@pytest.fixture
def sweeper(temp_store, provider, lifecycle, clock):
    return PendingSweeper(temp_store, provider, lifecycle=lifecycle, clock=clock)


@pytest.fixture
def credit_guard(temp_store):
    return CreditGuard(temp_store)


@pytest.fixture
def pricing_service(temp_store):
    return PricingService(temp_store)


@pytest.fixture
def partner_service(temp_store):
    return PartnerService(temp_store)


@pytest.fixture
def account_service(temp_store, provider):
    return AccountService(temp_store, provider=provider)


@pytest.fixture
def post_paid_partner(partner_service):
    """Create a post-paid partner on the STANDARD tier."""
    partner_id = partner_service.create_partner(name="Post Paid Partner")
    return partner_service.get_partner(partner_id)


@pytest.fixture
def deposit_partner(partner_service):
    """Create a deposit partner with a 100.00 credit limit."""
    partner_id = partner_service.create_partner(
        name="Deposit Partner", payment_type=PaymentType.DEPOSIT, credit_limit=Decimal("100.00")
    )
    return partner_service.get_partner(partner_id)


@pytest.fixture
def account_factory(temp_store):
    """Return a function creating a client and DV account for a partner."""

    def make_account(partner, external_id="ACME-1", subscription_years=1, name="Main"):
        client_id = temp_store.create_client(partner.id, f"{name} Client")
        account_id = temp_store.create_account(
            client_id=client_id,
            name=name,
            certificate_type=CertificateType.DV,
            subscription_years=subscription_years,
            external_id=external_id,
        )
        return temp_store.get_account(account_id)

    return make_account


@pytest.fixture
def sample_account(account_factory, post_paid_partner):
    """Create a pending_start DV account under the post-paid partner."""
    return account_factory(post_paid_partner)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
