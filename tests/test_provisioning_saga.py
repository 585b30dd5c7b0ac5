"""Tests for the domain-provisioning saga."""

import json
import pytest
from decimal import Decimal
from urllib.parse import parse_qs

import httpx

from certledger.domain.entities import (
    AccountStatus,
    DomainStatus,
    DomainType,
    TransactionStatus,
    TransactionType,
)
from certledger.domain.errors import (
    ConflictError,
    CreditRejected,
    FailureKind,
    LedgerError,
    NotFoundError,
    ProviderError,
    ProviderFailure,
    TransientError,
    ValidationError,
)
from certledger.domain.provisioning import (
    RESERVATION_FAILED,
    RECONCILE_FAILED,
    DomainRequest,
    ProvisioningSaga,
    normalize_request,
)
from certledger.provider.client import ProviderCredentials, ProvisioningClient


def _rejected(message):
    return ProviderError(ProviderFailure(FailureKind.REJECTED, message, 403))


class TestSubmitDomainBatch:
    """Tests for the happy path and per-domain outcomes."""

    def test_first_success_activates_account(self, temp_store, saga, sample_account, clock):
        batch = saga.submit_domain_batch(sample_account.id, [DomainRequest("example.com")], actor="alice")

        assert batch.succeeded == 1
        assert batch.failed == 0
        assert batch.activated is True

        result = batch.results[0]
        domain = temp_store.get_domain(result.domain_id)
        txn = temp_store.get_transaction(result.transaction_id)
        assert domain.status == DomainStatus.ACTIVE
        assert domain.order_number == result.order_number
        assert domain.added_at == clock.now
        assert txn.status == TransactionStatus.SUCCESS
        assert txn.order_number == result.order_number
        assert txn.description == "Adding domain: example.com"
        assert txn.amount == Decimal("50.00")

        account = temp_store.get_account(sample_account.id)
        assert account.status == AccountStatus.ACTIVE
        assert account.start_date == clock.now
        assert account.end_date == clock.now.replace(year=clock.now.year + 1)

        entries = temp_store.list_audit_entries(action="add_domain")
        assert len(entries) == 1
        assert entries[0].actor == "alice"
        assert entries[0].details["order_number"] == result.order_number
        assert entries[0].details["price"] == "50.00"

    def test_idempotency_token_is_transaction_id(self, saga, provider, sample_account):
        batch = saga.submit_domain_batch(sample_account.id, [DomainRequest("example.com")], actor="alice")

        (call,) = provider.called("add_domain")
        assert call == ("add_domain", "ACME-1", "example.com", str(batch.results[0].transaction_id))

    def test_wildcard_inferred_from_prefix(self, temp_store, saga, sample_account):
        batch = saga.submit_domain_batch(sample_account.id, [DomainRequest("*.Example.com")], actor="alice")

        result = batch.results[0]
        assert result.domain == "*.example.com"
        assert result.price == Decimal("150.00")
        assert temp_store.get_domain(result.domain_id).domain_type == DomainType.WILDCARD

    def test_partial_failure_does_not_affect_siblings(self, temp_store, saga, provider, sample_account):
        provider.add_failures["bad.example.com"] = _rejected("Invalid domain")

        batch = saga.submit_domain_batch(
            sample_account.id,
            [DomainRequest("good.example.com"), DomainRequest("bad.example.com"), DomainRequest("ok.example.com")],
            actor="alice",
        )

        assert [r.success for r in batch.results] == [True, False, True]
        assert batch.succeeded == 2
        assert batch.failed == 1
        assert batch.total_charged == Decimal("100.00")

        failed = batch.results[1]
        assert failed.error == "Invalid domain"
        assert temp_store.get_domain(failed.domain_id).status == DomainStatus.FAILED
        txn = temp_store.get_transaction(failed.transaction_id)
        assert txn.status == TransactionStatus.FAILED
        assert txn.description == "Failed: Invalid domain"

    def test_transient_failure_recorded_as_api_error(self, temp_store, saga, provider, sample_account):
        provider.add_failures["slow.example.com"] = TransientError(
            ProviderFailure(FailureKind.TIMEOUT, "Request timeout after 30 seconds")
        )

        batch = saga.submit_domain_batch(sample_account.id, [DomainRequest("slow.example.com")], actor="alice")

        result = batch.results[0]
        assert result.success is False
        assert batch.activated is False
        txn = temp_store.get_transaction(result.transaction_id)
        assert txn.status == TransactionStatus.FAILED
        assert txn.description == "API Error: Request timeout after 30 seconds"
        assert temp_store.get_account(sample_account.id).status == AccountStatus.PENDING_START

    def test_already_active_account_is_not_reactivated(self, temp_store, saga, sample_account):
        saga.submit_domain_batch(sample_account.id, [DomainRequest("a.example.com")], actor="alice")
        batch = saga.submit_domain_batch(sample_account.id, [DomainRequest("b.example.com")], actor="alice")

        assert batch.activated is False
        assert len(temp_store.list_audit_entries(action="account_activated")) == 1


class TestValidation:
    """Tests for batch validation, which happens before any write."""

    @pytest.mark.parametrize(
        "requests",
        [
            [],
            [DomainRequest("")],
            [DomainRequest("not a host")],
            [DomainRequest("localhost")],
            [DomainRequest("-bad.example.com")],
            [DomainRequest("example.com", type="multi")],
            [DomainRequest("example.com", type="wildcard")],
            [DomainRequest("*.example.com", type="single")],
            [DomainRequest("example.com"), DomainRequest("EXAMPLE.com")],
        ],
    )
    def test_invalid_batches_write_nothing(self, temp_store, saga, provider, sample_account, requests):
        with pytest.raises(ValidationError):
            saga.submit_domain_batch(sample_account.id, requests, actor="alice")

        assert temp_store.list_domains(sample_account.id, include_removed=True) == []
        assert provider.calls == []

    def test_account_without_external_id(self, temp_store, saga, post_paid_partner, account_factory):
        account = account_factory(post_paid_partner, external_id=None)

        with pytest.raises(ValidationError, match="no provider account ID"):
            saga.submit_domain_batch(account.id, [DomainRequest("example.com")], actor="alice")

    def test_missing_account(self, saga):
        with pytest.raises(NotFoundError, match="Account 999 not found"):
            saga.submit_domain_batch(999, [DomainRequest("example.com")], actor="alice")

    @pytest.mark.parametrize("status", [AccountStatus.SUSPENDED, AccountStatus.TERMINATED])
    def test_blocked_account_status(self, temp_store, saga, sample_account, status):
        temp_store.update_account(sample_account.id, {"status": status})

        with pytest.raises(ConflictError):
            saga.submit_domain_batch(sample_account.id, [DomainRequest("example.com")], actor="alice")

    def test_normalize_request_explicit_type(self):
        assert normalize_request(DomainRequest(" Shop.Example.COM ", type="SINGLE")) == (
            "shop.example.com",
            DomainType.SINGLE,
        )


class TestCreditGate:
    """Tests for the batch credit check."""

    def test_rejected_batch_writes_nothing(self, temp_store, saga, provider, deposit_partner, account_factory):
        account = account_factory(deposit_partner)
        requests = [DomainRequest(f"d{i}.example.com") for i in range(3)]

        with pytest.raises(CreditRejected) as exc_info:
            saga.submit_domain_batch(account.id, requests, actor="alice")

        assert exc_info.value.required == Decimal("150.00")
        assert exc_info.value.shortfall == Decimal("50.00")
        assert temp_store.list_domains(account.id, include_removed=True) == []
        assert provider.calls == []

    def test_batch_within_limit_succeeds(self, saga, deposit_partner, account_factory):
        account = account_factory(deposit_partner)

        batch = saga.submit_domain_batch(
            account.id, [DomainRequest("a.example.com"), DomainRequest("b.example.com")], actor="alice"
        )

        assert batch.succeeded == 2


class TestReservation:
    """Tests for the reserve step and its compensation."""

    def test_transaction_insert_failure_removes_domain(self, temp_store, saga, provider, sample_account, monkeypatch):
        def failing_insert(**kwargs):
            raise LedgerError("disk I/O error")

        monkeypatch.setattr(temp_store, "insert_transaction", failing_insert)

        batch = saga.submit_domain_batch(
            sample_account.id, [DomainRequest("a.example.com"), DomainRequest("b.example.com")], actor="alice"
        )

        assert [r.error for r in batch.results] == [RESERVATION_FAILED, RESERVATION_FAILED]
        assert temp_store.list_domains(sample_account.id, include_removed=True) == []
        assert provider.calls == []

    def test_domain_insert_failure(self, temp_store, saga, provider, sample_account, monkeypatch):
        def failing_insert(*args, **kwargs):
            raise LedgerError("database is locked")

        monkeypatch.setattr(temp_store, "insert_domain", failing_insert)

        batch = saga.submit_domain_batch(sample_account.id, [DomainRequest("a.example.com")], actor="alice")

        assert batch.results[0].error == RESERVATION_FAILED
        assert batch.results[0].domain_id is None
        assert provider.calls == []

    def test_reconcile_failure_leaves_reservation_pending(
        self, temp_store, saga, sample_account, monkeypatch
    ):
        def failing_update(*args, **kwargs):
            raise LedgerError("database is locked")

        monkeypatch.setattr(temp_store, "update_transaction_status", failing_update)

        batch = saga.submit_domain_batch(sample_account.id, [DomainRequest("a.example.com")], actor="alice")

        result = batch.results[0]
        assert result.success is False
        assert result.error == RECONCILE_FAILED
        assert temp_store.get_transaction(result.transaction_id).status == TransactionStatus.PENDING_API

    def test_audit_failure_keeps_settled_domain_successful(
        self, temp_store, saga, sample_account, monkeypatch
    ):
        real_append = temp_store.append_audit

        def append_except_add_domain(actor, action, *args, **kwargs):
            if action == "add_domain":
                raise LedgerError("disk I/O error")
            return real_append(actor, action, *args, **kwargs)

        monkeypatch.setattr(temp_store, "append_audit", append_except_add_domain)

        batch = saga.submit_domain_batch(sample_account.id, [DomainRequest("a.example.com")], actor="alice")

        result = batch.results[0]
        assert result.success is True
        assert result.error is None
        assert batch.activated is True
        assert temp_store.get_domain(result.domain_id).status == DomainStatus.ACTIVE
        assert temp_store.get_transaction(result.transaction_id).status == TransactionStatus.SUCCESS
        assert temp_store.get_account(sample_account.id).status == AccountStatus.ACTIVE

    def test_audit_entries_use_saga_clock(self, temp_store, saga, sample_account, clock):
        batch = saga.submit_domain_batch(sample_account.id, [DomainRequest("a.example.com")], actor="alice")

        (entry,) = temp_store.list_audit_entries(action="add_domain")
        (activation,) = temp_store.list_audit_entries(action="account_activated")
        domain = temp_store.get_domain(batch.results[0].domain_id)
        assert entry.created_at == clock.now
        assert activation.created_at == clock.now
        assert domain.added_at == entry.created_at

    def test_second_add_transaction_for_domain_is_refused(self, temp_store, saga, sample_account):
        batch = saga.submit_domain_batch(sample_account.id, [DomainRequest("a.example.com")], actor="alice")
        original = temp_store.get_transaction(batch.results[0].transaction_id)

        with pytest.raises(LedgerError):
            temp_store.insert_transaction(
                partner_id=original.partner_id,
                account_id=original.account_id,
                domain_id=original.domain_id,
                type=TransactionType.ADD_DOMAIN,
                status=TransactionStatus.PENDING_API,
                amount=original.amount,
            )


class TestRetryThroughProvider:
    """Saga running against the real HTTP client with a scripted transport."""

    def test_transient_retry_keeps_single_transaction(self, temp_store, sample_account, lifecycle, clock):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            form = parse_qs(request.content.decode())
            seen.append((request.headers.get("Idempotency-Key"), form["action"][0]))
            if len(seen) == 1:
                return httpx.Response(503, json={"errorMessage": "Service unavailable"})
            return httpx.Response(200, content=json.dumps({"success": True, "orderNumber": 4242}))

        client = ProvisioningClient(
            ProviderCredentials("user", "secret"),
            base_url="https://provider.test/api",
            backoff_base=0,
            transport=httpx.MockTransport(handler),
        )
        saga = ProvisioningSaga(temp_store, client, lifecycle=lifecycle, clock=clock)

        batch = saga.submit_domain_batch(sample_account.id, [DomainRequest("example.com")], actor="alice")

        result = batch.results[0]
        assert result.success is True
        assert result.order_number == "4242"
        assert seen == [(str(result.transaction_id), "ADDDOMAIN")] * 2
        assert temp_store.find_transaction_by_domain_and_type(
            result.domain_id, TransactionType.ADD_DOMAIN
        ).id == result.transaction_id
        assert temp_store.sum_transactions(
            temp_store.get_partner_for_account(sample_account.id).id,
            TransactionType.ADD_DOMAIN,
            [TransactionStatus.SUCCESS, TransactionStatus.PENDING_API, TransactionStatus.FAILED],
        ) == Decimal("50.00")
