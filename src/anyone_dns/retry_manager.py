"""
Retry Manager for registry calls.

Retries transient failures (timeouts, network errors, 5xx, rate limiting)
with exponential backoff. Definitive answers such as contract reverts are
returned to the caller on the first attempt.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from .config import RetryConfig
from .enums import RegistryErrorCode

T = TypeVar("T")


@dataclass
class RetryResult(Generic[T]):
    """Outcome of an operation run under the retry policy."""

    success: bool
    result: Optional[T]
    attempts: int
    last_error: Optional[Exception]


class RetryManager:
    """Runs an async operation until it succeeds, fails definitively, or retries run out."""

    TRANSIENT_ERROR_CODES = frozenset({
        RegistryErrorCode.TIMEOUT.value,
        RegistryErrorCode.NETWORK_ERROR.value,
        RegistryErrorCode.SERVER_ERROR.value,
        RegistryErrorCode.RATE_LIMITED.value,
    })

    def __init__(
        self,
        config: RetryConfig,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Args:
            config: Attempt limit, backoff bounds and the codes worth retrying
            sleep: Coroutine used to wait between attempts
        """
        self._config = config
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        """One initial attempt plus ``max_retries``."""
        return self._config.max_retries + 1

    def calculate_delay(self, attempt: int) -> float:
        """
        Backoff before retry number ``attempt + 1``.

        Doubles from ``base_delay_seconds`` and never exceeds ``max_delay_seconds``.
        """
        return min(
            self._config.base_delay_seconds * 2 ** attempt,
            self._config.max_delay_seconds,
        )

    def is_retryable_error(self, error: Exception) -> bool:
        """Only errors carrying a transient code that the config also allows are retried."""
        code = getattr(error, "code", None)
        if isinstance(code, RegistryErrorCode):
            code = code.value
        return (
            code in self.TRANSIENT_ERROR_CODES
            and code in self._config.retryable_errors
        )

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        is_retryable: Optional[Callable[[Exception], bool]] = None,
    ) -> RetryResult[T]:
        """
        Await ``operation`` under the retry policy.

        Exceptions never escape; the last one is reported on the result.

        Args:
            operation: Zero-argument coroutine factory, called once per attempt
            is_retryable: Decides whether an exception is worth another attempt;
                defaults to is_retryable_error
        """
        should_retry = is_retryable or self.is_retryable_error
        error: Optional[Exception] = None

        for attempt in range(self.max_attempts):
            if attempt:
                await self._sleep(self.calculate_delay(attempt - 1))
            try:
                value = await operation()
            except Exception as e:
                error = e
                if not should_retry(e):
                    return RetryResult(False, None, attempt + 1, e)
                continue
            return RetryResult(True, value, attempt + 1, None)

        return RetryResult(False, None, self.max_attempts, error)
