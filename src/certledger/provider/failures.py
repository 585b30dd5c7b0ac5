"""Provider failure taxonomy.

Raw error payloads from the CA API are duck-typed (``errorMessage``,
``details``, ``errorType``, ``errorCode`` in varying combinations). This
module turns them into a closed set of failure kinds so nothing past the
client has to look at payload shapes.
"""

import re
from typing import Any, Optional

from certledger.domain.errors import FailureKind, ProviderFailure

_ALREADY_EXISTS_PATTERNS = (
    re.compile(r"domain.*already.*present", re.IGNORECASE),
    re.compile(r"domain.*already.*subscribed", re.IGNORECASE),
    re.compile(r"subscription.*already.*exists", re.IGNORECASE),
)

_SUBSCRIPTION_EXPIRED_PATTERNS = (
    re.compile(r"subscription.*expired", re.IGNORECASE),
    re.compile(r"renew.*subscription.*before", re.IGNORECASE),
)

_RATE_LIMIT_PATTERN = re.compile(r"rate.*limit.*exceeded", re.IGNORECASE)


def is_already_exists_message(message: str) -> bool:
    return any(p.search(message) for p in _ALREADY_EXISTS_PATTERNS)


def is_subscription_expired_message(message: str) -> bool:
    return any(p.search(message) for p in _SUBSCRIPTION_EXPIRED_PATTERNS)


def is_rate_limited(status_code: Optional[int], message: str) -> bool:
    return status_code == 429 or bool(_RATE_LIMIT_PATTERN.search(message))


def extract_message(payload: dict[str, Any], fallback: str = "") -> str:
    """Pull a human-readable message out of an error payload."""
    for key in ("errorMessage", "details"):
        value = payload.get(key)
        if value:
            return str(value)
    if payload.get("errorType"):
        return f"Error type: {payload['errorType']}"
    return fallback or "Unknown error occurred"


def classify(status_code: Optional[int], payload: dict[str, Any], reason: str = "") -> ProviderFailure:
    """Classify an error response.

    Args:
        status_code: HTTP status, or the payload's ``errorCode`` for errors
            returned inside a 200 response
        payload: Decoded JSON body (empty dict if the body was not JSON)
        reason: HTTP reason phrase, used when the payload carries no message

    Returns:
        ProviderFailure with a kind from the closed taxonomy
    """
    message = extract_message(payload, reason)

    if status_code == 403 and is_already_exists_message(message):
        return ProviderFailure(
            FailureKind.ALREADY_EXISTS,
            "Domain already subscribed (existing subscription found)",
            status_code,
            message,
        )

    if status_code == 403 and is_subscription_expired_message(message):
        return ProviderFailure(
            FailureKind.SUBSCRIPTION_EXPIRED,
            "Subscription has expired. Please extend the subscription using EXTENDDOMAINS action.",
            status_code,
            message,
        )

    if is_rate_limited(status_code, message):
        return ProviderFailure(
            FailureKind.RATE_LIMITED,
            "Rate limit exceeded. Request will be retried automatically.",
            status_code,
            message,
        )

    if status_code == 400:
        return ProviderFailure(
            FailureKind.MALFORMED, message or "Invalid request parameters", status_code, message
        )

    if status_code == 401:
        return ProviderFailure(
            FailureKind.UNAUTHORIZED,
            "Authentication failed. Please check the provider login name and password.",
            status_code,
            message,
        )

    if status_code is not None and 500 <= status_code < 600:
        return ProviderFailure(FailureKind.SERVER_ERROR, message, status_code, payload.get("details"))

    return ProviderFailure(FailureKind.REJECTED, message, status_code, payload.get("details"))


def timeout_failure(timeout: float) -> ProviderFailure:
    return ProviderFailure(FailureKind.TIMEOUT, f"Request timeout after {timeout:g} seconds")


def unreachable_failure(error: Exception) -> ProviderFailure:
    return ProviderFailure(FailureKind.UNREACHABLE, f"Provider unreachable: {error}")
