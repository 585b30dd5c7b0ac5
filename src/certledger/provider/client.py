"""Certificate provider provisioning API client.

Every action is a form-encoded POST to a single endpoint carrying the login
credentials, the action name and its parameters. Responses are JSON. Errors
are translated into the failure taxonomy in ``certledger.provider.failures``
before they leave this module.
"""

import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Optional

import httpx
import structlog
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from certledger.domain.errors import ProviderError, TransientError
from certledger.provider.failures import (
    FailureKind,
    ProviderFailure,
    classify,
    timeout_failure,
    unreachable_failure,
)

logger = structlog.get_logger(__name__)

DEFAULT_API_URL = "https://secure.trust-provider.com/products/!ACMEAdmin"
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_BASE = 2.0


@dataclass(frozen=True)
class ProviderCredentials:
    login_name: str
    login_password: str


@dataclass(frozen=True)
class AddDomainResult:
    """Outcome of a successful ADDDOMAIN call."""

    order_number: Optional[str]
    cost: Optional[Decimal] = None
    already_existed: bool = False


def _to_error(failure: ProviderFailure) -> ProviderError:
    if failure.retriable:
        return TransientError(failure)
    return ProviderError(failure)


def _decode(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {"data": payload}


def _error_code(payload: dict[str, Any]) -> Optional[int]:
    try:
        return int(payload["errorCode"])
    except (KeyError, TypeError, ValueError):
        return None


class ProvisioningClient:
    """HTTP client for the provider's account and domain actions.

    Retriable failures (rate limit, 5xx, timeout, connection errors) are
    retried with exponential backoff: ``backoff_base`` seconds after the first
    attempt, doubling after each further one, for at most ``max_attempts``
    attempts. Every attempt of one call sends the same idempotency token.
    """

    def __init__(
        self,
        credentials: ProviderCredentials,
        base_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_base: float = DEFAULT_BACKOFF_BASE,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_attempts <= 0:
            raise ValueError("max_attempts must be > 0")
        if backoff_base < 0:
            raise ValueError("backoff_base must be >= 0")

        self.credentials = credentials
        self.base_url = base_url
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self._sleep = sleep
        self._http: Optional[httpx.Client] = httpx.Client(timeout=timeout, transport=transport)

    @property
    def mock_mode(self) -> bool:
        return False

    def close(self) -> None:
        if self._http is not None:
            self._http.close()
            self._http = None

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Retrying provider call",
            action=retry_state.kwargs.get("action"),
            attempt=retry_state.attempt_number,
            max_attempts=self.max_attempts,
            wait_seconds=round(retry_state.next_action.sleep, 2) if retry_state.next_action else 0,
            failure=exc.kind.value if isinstance(exc, ProviderError) else None,
            error=str(exc) if exc else None,
        )

    def _send(self, action: str, params: dict[str, str], headers: dict[str, str]) -> dict[str, Any]:
        """Perform a single attempt and return the payload or raise a classified error."""
        if self._http is None:
            raise RuntimeError("ProvisioningClient is closed")

        body = {
            "loginName": self.credentials.login_name,
            "loginPassword": self.credentials.login_password,
            "action": action,
            **params,
        }
        try:
            response = self._http.post(self.base_url, data=body, headers=headers)
        except httpx.TimeoutException:
            raise TransientError(timeout_failure(self.timeout))
        except httpx.TransportError as e:
            raise TransientError(unreachable_failure(e))

        payload = _decode(response)
        if response.is_success and payload.get("success") is not False:
            return payload

        status_code = response.status_code if not response.is_success else _error_code(payload)
        failure = classify(status_code, payload, response.reason_phrase)
        if failure.kind == FailureKind.ALREADY_EXISTS:
            logger.info("Domain already subscribed, treating as success", action=action)
            return {"success": True, "alreadyExists": True, "message": failure.message}

        raise _to_error(failure)

    def call(self, action: str, params: dict[str, str], idempotency_token: Optional[str] = None) -> dict[str, Any]:
        """Invoke a provider action.

        Args:
            action: Provider action name (e.g. ``ADDDOMAIN``)
            params: Action parameters; credentials are added here and never logged
            idempotency_token: Sent as ``Idempotency-Key`` on every attempt

        Returns:
            Decoded success payload

        Raises:
            TransientError: Retriable failure that persisted through all attempts
            ProviderError: Terminal failure
        """
        headers = {"Idempotency-Key": idempotency_token} if idempotency_token else {}
        logger.info("Provider request", action=action, params=params)

        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_base, exp_base=2),
            retry=retry_if_exception_type(TransientError),
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        try:
            payload = retrying(self._send, action=action, params=params, headers=headers)
        except ProviderError as e:
            logger.error(
                "Provider request failed",
                action=action,
                failure=e.kind.value,
                status_code=e.failure.status_code,
                error=str(e),
            )
            raise

        logger.info("Provider request succeeded", action=action)
        return payload

    def add_domain(self, external_id: str, domain_name: str, idempotency_token: str) -> AddDomainResult:
        """Subscribe a domain to an account (ADDDOMAIN)."""
        payload = self.call(
            "ADDDOMAIN",
            {
                "acmeAccountID": external_id,
                "domainName": domain_name,
                "quoteOnly": "N",
                "addAssociatedFQDN": "N",
            },
            idempotency_token=idempotency_token,
        )
        order_number = payload.get("orderNumber")
        cost = payload.get("cost")
        return AddDomainResult(
            order_number=str(order_number) if order_number is not None else None,
            cost=Decimal(str(cost)) if cost is not None else None,
            already_existed=bool(payload.get("alreadyExists")),
        )

    def remove_domain(self, external_id: str, domain_name: str) -> None:
        """Unsubscribe a domain from an account (REMOVEDOMAIN)."""
        self.call("REMOVEDOMAIN", {"acmeAccountID": external_id, "domainName": domain_name})

    def list_domains(self, external_id: str) -> list[str]:
        """Return the domain names subscribed to an account (LISTDOMAINS)."""
        payload = self.call("LISTDOMAINS", {"acmeAccountID": external_id})
        return [d["domainName"] for d in payload.get("domains", []) if d.get("domainName")]

    def suspend_account(self, external_id: str) -> None:
        self.call("SUSPENDACCOUNT", {"acmeAccountID": external_id})

    def unsuspend_account(self, external_id: str) -> None:
        self.call("UNSUSPENDACCOUNT", {"acmeAccountID": external_id})

    def deactivate_account(self, external_id: str) -> None:
        """Permanently deactivate an account. This cannot be undone provider-side."""
        logger.warning("Deactivating provider account permanently", external_id=external_id)
        self.call("DEACTIVATEACCOUNT", {"acmeAccountID": external_id})
