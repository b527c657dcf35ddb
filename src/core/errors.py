# src/core/errors.py — v1
"""Error taxonomy shared by providers, uploaders, cache and orchestrator.

Provider failures carry an ``error_kind`` that the orchestrator maps onto the
public ``GenerationFailure.error_kind`` values.
"""

from __future__ import annotations

from typing import Literal

ErrorKind = Literal["ValidationError", "BillingBlocked", "ProviderError", "UploadError"]

ERROR_HTTP_STATUS: dict[str, int] = {
    "ValidationError": 400,
    "BillingBlocked": 402,
    "ProviderError": 502,
    "UploadError": 502,
}


class ProfilegenError(Exception):
    """Base class for all profilegen errors."""


class ConfigurationError(ProfilegenError):
    """Configuration is internally inconsistent."""


class ClientInitError(ProfilegenError):
    """A required client could not be constructed at startup."""


class InvalidRequestError(ProfilegenError):
    """Caller supplied a malformed generation request. Never retried."""

    error_kind: ErrorKind = "ValidationError"


class ProviderFailure(ProfilegenError):
    """Base class for image provider failures."""

    error_kind: ErrorKind = "ProviderError"
    retryable: bool = True

    def __init__(
        self,
        message: str,
        provider: str = "unknown",
        status_code: int | None = None,
    ) -> None:
        self.provider = provider
        self.status_code = status_code
        super().__init__(message)


class TransientError(ProviderFailure):
    """Network failure, timeout or 5xx. The whole generation may be retried."""


class FatalError(ProviderFailure):
    """Malformed provider response or missing output field.

    Retried once with the same prompt before being surfaced.
    """


class BillingBlocked(ProviderFailure):
    """Provider refuses work because the account cannot be billed."""

    error_kind: ErrorKind = "BillingBlocked"
    retryable = False


class UploadFailed(ProfilegenError):
    """Every upload tier failed."""

    error_kind: ErrorKind = "UploadError"

    def __init__(self, message: str, tier_errors: dict[str, str] | None = None) -> None:
        self.tier_errors = dict(tier_errors or {})
        super().__init__(message)


class CachePersistenceError(ProfilegenError):
    """Durable write of the cache manifest failed."""
