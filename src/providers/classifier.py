# src/providers/classifier.py — v1
"""Single place that maps provider responses and exceptions to the taxonomy.

Some upstream APIs only signal billing trouble in free text, so keyword
matching on the body is done here and nowhere else.
"""

from __future__ import annotations

import json
from typing import Any

import httpx

from profilegen.core.errors import (
    BillingBlocked,
    FatalError,
    ProviderFailure,
    TransientError,
)

BILLING_KEYWORDS: tuple[str, ...] = (
    "payment",
    "credit",
    "billing",
    "insufficient funds",
    "insufficient balance",
    "exhausted balance",
)

TRANSIENT_STATUS_CODES = frozenset({408, 425, 429})


def classify_failure(
    status_code: int | None,
    body: Any = None,
    provider: str = "unknown",
) -> ProviderFailure:
    """Classify a failed provider response.

    Args:
        status_code: HTTP status, or None for in-payload job errors.
        body: Response body (text, dict or None).
        provider: Provider name for error context.

    Returns:
        BillingBlocked, TransientError or FatalError (not raised).
    """
    text = _body_text(body)
    snippet = text[:300] if text else "no details"

    # retryable statuses win over any wording in the body
    if status_code is not None and (status_code in TRANSIENT_STATUS_CODES or status_code >= 500):
        return TransientError(
            f"{provider} returned HTTP {status_code}: {snippet}",
            provider=provider, status_code=status_code,
        )
    if status_code == 402 or _mentions_billing(text):
        return BillingBlocked(
            f"{provider} refused the request for billing reasons: {snippet}",
            provider=provider, status_code=status_code,
        )
    if status_code is None:
        return FatalError(f"{provider} job failed: {snippet}", provider=provider)
    return FatalError(
        f"{provider} returned HTTP {status_code}: {snippet}",
        provider=provider, status_code=status_code,
    )


def classify_exception(exc: BaseException, provider: str = "unknown") -> ProviderFailure:
    """Classify an exception raised while talking to a provider."""
    if isinstance(exc, ProviderFailure):
        return exc
    if isinstance(exc, httpx.HTTPStatusError):
        return classify_failure(exc.response.status_code, exc.response.text, provider)
    if isinstance(exc, httpx.TimeoutException):
        return TransientError(f"{provider} request timed out: {exc}", provider=provider)
    if isinstance(exc, httpx.TransportError):
        return TransientError(f"{provider} network error: {exc}", provider=provider)
    if isinstance(exc, (ValueError, KeyError, TypeError)):
        return FatalError(f"{provider} returned a malformed response: {exc}", provider=provider)
    return FatalError(f"{provider} failed unexpectedly: {exc}", provider=provider)


def _mentions_billing(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in BILLING_KEYWORDS)


def _body_text(body: Any) -> str:
    if body is None:
        return ""
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        return body
    try:
        return json.dumps(body, default=str)
    except (TypeError, ValueError):
        return str(body)
