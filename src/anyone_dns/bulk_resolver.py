"""
Bulk resolver.

Runs the domain resolver over many names in consecutive batches. Names in
a batch are resolved concurrently and joined before the next batch starts;
between batches the whole run pauses to stay under the JSON-RPC provider's
rate limits.
"""

import asyncio
from typing import Awaitable, Callable, Optional, Sequence

from .enums import LogLevel, ResolutionErrorKind
from .models import ResolutionFailure, ResolutionResult
from .resolver import DomainResolver
from .service_logger import ServiceLogger


DEFAULT_BATCH_SIZE = 100
DEFAULT_DELAY_MS = 1000


class BulkResolver:
    """Batched, paced fan-out over DomainResolver.resolve."""

    COMPONENT = "BulkResolver"

    def __init__(
        self,
        resolver: DomainResolver,
        logger: Optional[ServiceLogger] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the bulk resolver.

        Args:
            resolver: Single-domain resolver
            logger: Optional logger
            sleep: Coroutine used for the pause between batches
        """
        self._resolver = resolver
        self._logger = logger
        self._sleep = sleep

    @property
    def resolver(self) -> DomainResolver:
        return self._resolver

    async def resolve_all(
        self,
        domains: Sequence[str],
        batch_size: int = DEFAULT_BATCH_SIZE,
        delay_ms: int = DEFAULT_DELAY_MS,
    ) -> list[ResolutionResult]:
        """
        Resolve every domain, one result per input in input order.

        Args:
            domains: Names to resolve (duplicates are resolved again)
            batch_size: Maximum number of concurrent resolutions
            delay_ms: Pause after each batch except the last

        Returns:
            List of results aligned with ``domains``

        Raises:
            ValueError: If batch_size < 1 or delay_ms < 0
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        if delay_ms < 0:
            raise ValueError(f"delay_ms must be non-negative, got {delay_ms}")

        domains = list(domains)
        results: list[ResolutionResult] = []
        batch_count = (len(domains) + batch_size - 1) // batch_size

        for batch_index, start in enumerate(range(0, len(domains), batch_size)):
            batch = domains[start:start + batch_size]

            outcomes = await asyncio.gather(
                *(self._resolver.resolve(domain) for domain in batch),
                return_exceptions=True,
            )
            for domain, outcome in zip(batch, outcomes):
                if isinstance(outcome, Exception):
                    outcome = ResolutionFailure(
                        domain=domain,
                        error=ResolutionErrorKind.REGISTRY_ERROR,
                        message=f"Resolution failed for domain {domain}: {outcome}",
                    )
                elif isinstance(outcome, BaseException):
                    raise outcome
                results.append(outcome)

            self._log(
                LogLevel.DEBUG,
                f"Resolved batch {batch_index + 1}/{batch_count}",
                {"batch_size": len(batch), "resolved_so_far": len(results)},
            )

            if start + batch_size < len(domains):
                await self._sleep(delay_ms / 1000)

        return results

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, self.COMPONENT, message, data)
