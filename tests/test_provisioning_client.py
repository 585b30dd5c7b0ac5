"""Tests for the provider HTTP client."""

import pytest
from decimal import Decimal
from urllib.parse import parse_qs

import httpx

from certledger.domain.errors import FailureKind, ProviderError, TransientError
from certledger.provider.client import ProviderCredentials, ProvisioningClient


class ScriptedTransport:
    """Replays a list of responses (or exceptions) and records every request."""

    def __init__(self, *steps):
        self.steps = list(steps)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        step = self.steps.pop(0) if len(self.steps) > 1 else self.steps[0]
        if isinstance(step, Exception):
            raise step
        return httpx.Response(step.status_code, content=step.content, headers=step.headers)

    def forms(self):
        return [{k: v[0] for k, v in parse_qs(r.content.decode()).items()} for r in self.requests]


def make_client(script, backoff_base=0.0, sleeps=None):
    return ProvisioningClient(
        ProviderCredentials("reseller", "s3cret"),
        base_url="https://provider.test/api",
        backoff_base=backoff_base,
        transport=httpx.MockTransport(script),
        sleep=sleeps.append if sleeps is not None else (lambda seconds: None),
    )


def ok(payload):
    return httpx.Response(200, json=payload)


class TestRequestShape:
    """Tests for what goes over the wire."""

    def test_add_domain_posts_form_with_credentials(self):
        script = ScriptedTransport(ok({"success": True, "orderNumber": 1234567, "cost": 50}))
        client = make_client(script)

        result = client.add_domain("ACME-1", "example.com", idempotency_token="17")

        assert result.order_number == "1234567"
        assert result.cost == Decimal("50")
        assert result.already_existed is False
        (form,) = script.forms()
        assert form == {
            "loginName": "reseller",
            "loginPassword": "s3cret",
            "action": "ADDDOMAIN",
            "acmeAccountID": "ACME-1",
            "domainName": "example.com",
            "quoteOnly": "N",
            "addAssociatedFQDN": "N",
        }
        assert script.requests[0].headers["Idempotency-Key"] == "17"

    def test_list_domains_returns_names(self):
        script = ScriptedTransport(
            ok({"success": True, "domains": [{"domainName": "a.example.com"}, {"domainName": "b.example.com"}]})
        )

        assert make_client(script).list_domains("ACME-1") == ["a.example.com", "b.example.com"]
        assert script.forms()[0]["action"] == "LISTDOMAINS"

    @pytest.mark.parametrize(
        "method, action",
        [
            ("suspend_account", "SUSPENDACCOUNT"),
            ("unsuspend_account", "UNSUSPENDACCOUNT"),
            ("deactivate_account", "DEACTIVATEACCOUNT"),
        ],
    )
    def test_account_actions(self, method, action):
        script = ScriptedTransport(ok({"success": True, "nRecordsUpdated": 1}))

        getattr(make_client(script), method)("ACME-9")

        assert script.forms()[0]["action"] == action
        assert script.forms()[0]["acmeAccountID"] == "ACME-9"

    def test_closed_client_refuses_calls(self):
        client = make_client(ScriptedTransport(ok({"success": True})))
        client.close()

        with pytest.raises(RuntimeError):
            client.list_domains("ACME-1")


class TestRetries:
    """Tests for retry behaviour per failure kind."""

    @pytest.mark.parametrize(
        "step, kind",
        [
            (httpx.Response(429, json={"errorMessage": "Too many requests"}), FailureKind.RATE_LIMITED),
            (httpx.Response(500, json={"errorMessage": "Internal error"}), FailureKind.SERVER_ERROR),
            (httpx.Response(503, text="Service Unavailable"), FailureKind.SERVER_ERROR),
            (httpx.ReadTimeout("timed out"), FailureKind.TIMEOUT),
            (httpx.ConnectError("connection refused"), FailureKind.UNREACHABLE),
        ],
    )
    def test_retriable_failures_use_three_attempts(self, step, kind):
        script = ScriptedTransport(step)

        with pytest.raises(TransientError) as exc_info:
            make_client(script).remove_domain("ACME-1", "example.com")

        assert exc_info.value.kind == kind
        assert len(script.requests) == 3

    @pytest.mark.parametrize(
        "step, kind",
        [
            (httpx.Response(400, json={"errorMessage": "Invalid domain name"}), FailureKind.MALFORMED),
            (httpx.Response(401, json={"errorMessage": "Bad credentials"}), FailureKind.UNAUTHORIZED),
            (httpx.Response(404, json={"errorMessage": "Account not found"}), FailureKind.REJECTED),
        ],
    )
    def test_terminal_failures_are_not_retried(self, step, kind):
        script = ScriptedTransport(step)

        with pytest.raises(ProviderError) as exc_info:
            make_client(script).remove_domain("ACME-1", "example.com")

        assert not isinstance(exc_info.value, TransientError)
        assert exc_info.value.kind == kind
        assert len(script.requests) == 1

    def test_backoff_waits_two_then_four_seconds(self):
        sleeps = []
        script = ScriptedTransport(httpx.Response(502, json={"errorMessage": "Bad gateway"}))

        with pytest.raises(TransientError):
            make_client(script, backoff_base=2.0, sleeps=sleeps).list_domains("ACME-1")

        assert sleeps == [2.0, 4.0]

    def test_recovers_after_transient_failure_with_same_token(self):
        script = ScriptedTransport(
            httpx.Response(503, json={"errorMessage": "Service unavailable"}),
            ok({"success": True, "orderNumber": 99}),
        )

        result = make_client(script).add_domain("ACME-1", "example.com", idempotency_token="5")

        assert result.order_number == "99"
        assert [r.headers["Idempotency-Key"] for r in script.requests] == ["5", "5"]


class TestErrorPayloads:
    """Tests for provider errors reported inside the payload."""

    def test_already_subscribed_is_success(self):
        script = ScriptedTransport(
            httpx.Response(403, json={"errorMessage": "Domain example.com is already subscribed to this account"})
        )

        result = make_client(script).add_domain("ACME-1", "example.com", idempotency_token="1")

        assert result.already_existed is True
        assert result.order_number is None
        assert len(script.requests) == 1

    def test_success_false_uses_error_code(self):
        script = ScriptedTransport(
            ok({"success": False, "errorCode": 403, "errorMessage": "Subscription has expired"})
        )

        with pytest.raises(ProviderError) as exc_info:
            make_client(script).add_domain("ACME-1", "example.com", idempotency_token="1")

        assert exc_info.value.kind == FailureKind.SUBSCRIPTION_EXPIRED
        assert exc_info.value.failure.status_code == 403

    def test_success_false_rate_limit_message_is_retried(self):
        script = ScriptedTransport(ok({"success": False, "errorMessage": "Rate limit exceeded, slow down"}))

        with pytest.raises(TransientError):
            make_client(script).list_domains("ACME-1")

        assert len(script.requests) == 3


class TestConstruction:
    def test_invalid_retry_settings(self):
        with pytest.raises(ValueError):
            ProvisioningClient(ProviderCredentials("a", "b"), max_attempts=0)
        with pytest.raises(ValueError):
            ProvisioningClient(ProviderCredentials("a", "b"), backoff_base=-1)
