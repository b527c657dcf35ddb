# src/generation/retry.py — v2
"""Retry policy for provider calls, keyed by failure class.

BillingBlocked has no entry and is therefore never retried; a failure
class without a policy propagates immediately.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from profilegen.core.errors import FatalError, ProviderFailure, TransientError

logger = logging.getLogger(__name__)


class RetryExhausted(ProviderFailure):
    """All retries exhausted for a provider call."""

    def __init__(self, operation: str, attempts: int, last_error: ProviderFailure):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{operation} failed after {attempts} attempts: {last_error}",
            provider=last_error.provider,
            status_code=last_error.status_code,
        )


@dataclass(frozen=True)
class RetryConfig:
    """Retry configuration for a specific failure class."""

    max_retries: int
    base_delay_s: float
    backoff_factor: float = 2.0
    jitter: bool = True


def default_retry_configs(
    max_retries: int = 1,
    base_delay_s: float = 1.0,
) -> dict[type[ProviderFailure], RetryConfig]:
    """Transient and fatal failures get the same bounded policy."""
    return {
        TransientError: RetryConfig(max_retries=max_retries, base_delay_s=base_delay_s),
        FatalError: RetryConfig(
            max_retries=max_retries, base_delay_s=base_delay_s, backoff_factor=1.0,
        ),
    }


def _config_for(
    error: ProviderFailure,
    configs: dict[type[ProviderFailure], RetryConfig],
) -> RetryConfig | None:
    for error_cls in type(error).__mro__:
        if error_cls in configs:
            return configs[error_cls]
    return None


def _compute_delay(config: RetryConfig, attempt: int) -> float:
    """Compute delay for a given attempt (0-based)."""
    delay = config.base_delay_s * (config.backoff_factor ** attempt)
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return delay


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    operation: str = "provider call",
    retry_configs: dict[type[ProviderFailure], RetryConfig] | None = None,
    **kwargs: Any,
) -> Any:
    """Execute an async function with retry logic.

    Only ProviderFailure subclasses are considered; anything else
    propagates untouched.

    Raises:
        BillingBlocked: Immediately, never retried.
        RetryExhausted: If all retries are exhausted.
    """
    configs = retry_configs if retry_configs is not None else default_retry_configs()
    attempts = 0

    while True:
        try:
            return await fn(*args, **kwargs)
        except ProviderFailure as e:
            attempts += 1
            config = _config_for(e, configs)
            if config is None or not e.retryable:
                raise
            if attempts > config.max_retries:
                raise RetryExhausted(operation, attempts, e) from e

            delay = _compute_delay(config, attempts - 1)
            logger.warning(
                "%s: %s (attempt %d/%d), retrying in %.1fs",
                operation, type(e).__name__, attempts, config.max_retries + 1, delay,
            )
            await asyncio.sleep(delay)
