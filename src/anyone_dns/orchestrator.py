"""
Cache Orchestrator for the anyone-dns service.

This module owns the last-known-good view of the name system and keeps it
fresh. It integrates:
- The inventory fetcher listing every registered name
- The bulk resolver turning names into hidden service addresses
- The refresh scheduler driving refresh -> wait TTL -> refresh

The inventory, the per-domain mapping and the hosts text live in one
immutable snapshot that is replaced in a single assignment, so readers never
see a mix of old and new data. A failed refresh keeps the previous snapshot.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Sequence

from .bulk_resolver import DEFAULT_BATCH_SIZE, DEFAULT_DELAY_MS, BulkResolver
from .config import ServiceConfig
from .enums import CacheState, LogLevel
from .exceptions import InventoryError
from .inventory_client import InventoryClient, InventoryFetcher, extract_domain_names
from .models import CacheSnapshot, RefreshOutcome, ResolutionResult, ResolutionSuccess
from .registry_client import JsonRpcRegistryReader
from .resolver import DomainResolver
from .scheduler import RefreshScheduler
from .service_logger import ServiceLogger


RefreshListener = Callable[[CacheSnapshot], Awaitable[None]]


class CacheOrchestrator:
    """
    Owner of the domain inventory, resolution cache and hosts list.

    Reads are served from the current snapshot and never wait on a refresh.
    Refreshes are serialized: at most one runs at any time.
    """

    COMPONENT = "CacheOrchestrator"

    def __init__(
        self,
        inventory_fetcher: InventoryFetcher,
        bulk_resolver: BulkResolver,
        cache_ttl_ms: int = 300_000,
        batch_size: int = DEFAULT_BATCH_SIZE,
        delay_ms: int = DEFAULT_DELAY_MS,
        logger: Optional[ServiceLogger] = None,
    ) -> None:
        """
        Initialize the orchestrator in the uninitialized state.

        Args:
            inventory_fetcher: Source of the domain inventory
            bulk_resolver: Batched resolver used on every refresh
            cache_ttl_ms: Wait between the end of one refresh and the next
            batch_size: Batch size used by refresh
            delay_ms: Inter-batch delay used by refresh
            logger: Optional logger
        """
        if cache_ttl_ms < 0:
            raise ValueError(f"cache_ttl_ms must be non-negative, got {cache_ttl_ms}")

        self._inventory_fetcher = inventory_fetcher
        self._bulk_resolver = bulk_resolver
        self._cache_ttl_ms = cache_ttl_ms
        self._batch_size = batch_size
        self._delay_ms = delay_ms
        self._logger = logger

        self._snapshot: Optional[CacheSnapshot] = None
        self._refresh_lock = asyncio.Lock()
        self._listeners: list[RefreshListener] = []
        self._scheduler = RefreshScheduler(
            callback=self.refresh,
            interval_seconds=cache_ttl_ms / 1000,
            logger=logger,
        )
        self._owned_clients: list = []

    @classmethod
    def from_config(
        cls,
        config: ServiceConfig,
        logger: Optional[ServiceLogger] = None,
    ) -> "CacheOrchestrator":
        """Wire the JSON-RPC registry reader, inventory client and resolvers from config."""
        registry_reader = JsonRpcRegistryReader(
            rpc_url=config.json_rpc_url,
            contract_address=config.registry_contract_address,
            timeout=config.registry_call_timeout_seconds,
            retry_config=config.retry,
        )
        inventory_client = InventoryClient(
            base_url=config.anyone_api_base_url,
            timeout=config.inventory_timeout_seconds,
        )
        resolver = DomainResolver(
            registry_reader=registry_reader,
            supported_tlds=config.supported_tlds,
            # Covers retries and backoff, not only a single request
            call_timeout_seconds=config.registry_call_timeout_seconds
            * (config.retry.max_retries + 1)
            + config.retry.max_delay_seconds * config.retry.max_retries,
            logger=logger,
        )
        orchestrator = cls(
            inventory_fetcher=inventory_client,
            bulk_resolver=BulkResolver(resolver, logger=logger),
            cache_ttl_ms=config.cache_ttl_ms,
            batch_size=config.batch.batch_size,
            delay_ms=config.batch.delay_ms,
            logger=logger,
        )
        orchestrator._owned_clients = [registry_reader, inventory_client]
        return orchestrator

    async def __aenter__(self) -> "CacheOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Stop the refresh loop and close any HTTP clients built by from_config."""
        await self.stop()
        for client in self._owned_clients:
            await client.aclose()

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> CacheState:
        if self._snapshot is None:
            return CacheState.UNINITIALIZED
        return CacheState.POPULATED

    @property
    def snapshot(self) -> Optional[CacheSnapshot]:
        return self._snapshot

    @property
    def last_refreshed_at(self) -> Optional[str]:
        snapshot = self._snapshot
        return snapshot.refreshed_at if snapshot else None

    @property
    def cache_ttl_ms(self) -> int:
        return self._cache_ttl_ms

    @property
    def scheduler(self) -> RefreshScheduler:
        return self._scheduler

    def list_domains(self) -> list[str]:
        """Names from the last successful refresh, in inventory order."""
        snapshot = self._snapshot
        return list(snapshot.domains) if snapshot else []

    def get_hosts_text(self) -> str:
        """``domain address`` lines for every resolved name."""
        snapshot = self._snapshot
        return snapshot.hosts_text if snapshot else ""

    def get_domain(self, name: str) -> Optional[ResolutionResult]:
        """Cached result for ``name``; None when the name is not in the cache."""
        snapshot = self._snapshot
        if snapshot is None:
            return None
        return snapshot.mappings.get(name)

    def get_mappings(self) -> list[ResolutionResult]:
        """All cached results, in inventory order."""
        snapshot = self._snapshot
        return list(snapshot.results) if snapshot else []

    # ------------------------------------------------------------------
    # Resolution pass-throughs
    # ------------------------------------------------------------------

    async def resolve(self, domain: str) -> ResolutionResult:
        """Resolve one name directly against the registry, bypassing the cache."""
        return await self._bulk_resolver.resolver.resolve(domain)

    async def resolve_all(
        self,
        domains: Sequence[str],
        batch_size: int = DEFAULT_BATCH_SIZE,
        delay_ms: int = DEFAULT_DELAY_MS,
    ) -> list[ResolutionResult]:
        """Resolve names directly against the registry, bypassing the cache."""
        return await self._bulk_resolver.resolve_all(domains, batch_size, delay_ms)

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def add_refresh_listener(self, listener: RefreshListener) -> None:
        """Register a coroutine called with the new snapshot after each successful refresh."""
        self._listeners.append(listener)

    async def refresh(self) -> RefreshOutcome:
        """
        Rebuild the cache from the inventory and the registry.

        Never raises. On failure the previous snapshot stays in place. Refresh
        listeners run after the refresh lock is released, so a listener may
        itself call refresh().

        Returns:
            RefreshOutcome describing what happened
        """
        async with self._refresh_lock:
            outcome = await self._refresh_locked()
            snapshot = self._snapshot if outcome.success else None

        if snapshot is not None:
            await self._notify_listeners(snapshot, outcome)
        return outcome

    async def _refresh_locked(self) -> RefreshOutcome:
        start_time = time.perf_counter()

        try:
            self._log(LogLevel.DEBUG, "Fetching anyone domains list", {})
            entries = await self._inventory_fetcher.fetch_entries()
        except InventoryError as e:
            return self._refresh_failed("Error fetching anyone domains list", e, start_time)
        except Exception as e:
            return self._refresh_failed("Unexpected error fetching anyone domains list", e, start_time)

        domains = extract_domain_names(entries)

        if not domains:
            self._log(LogLevel.WARN, "No anyone domains found", {})
            snapshot = CacheSnapshot.from_results([], [], refreshed_at=_now_iso())
            return self._commit(snapshot, start_time)

        self._log(
            LogLevel.DEBUG,
            f"Resolving hidden service addresses for {len(domains)} anyone domains",
            {"domain_count": len(domains)},
        )

        try:
            results = await self._bulk_resolver.resolve_all(
                domains, self._batch_size, self._delay_ms
            )
        except Exception as e:
            return self._refresh_failed(
                "Error resolving anyone domains to hidden service addresses", e, start_time
            )

        snapshot = CacheSnapshot.from_results(domains, results, refreshed_at=_now_iso())
        return self._commit(snapshot, start_time)

    def _commit(self, snapshot: CacheSnapshot, start_time: float) -> RefreshOutcome:
        # Single assignment: readers see either the old or the new snapshot
        self._snapshot = snapshot

        resolved = sum(1 for result in snapshot.results if isinstance(result, ResolutionSuccess))
        outcome = RefreshOutcome(
            success=True,
            domain_count=len(snapshot.domains),
            resolved_count=resolved,
            failed_count=len(snapshot.results) - resolved,
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )
        self._log(
            LogLevel.INFO,
            f"Cached {outcome.domain_count} domain mappings for {self._cache_ttl_ms}ms",
            {
                "domain_count": outcome.domain_count,
                "resolved_count": outcome.resolved_count,
                "failed_count": outcome.failed_count,
                "duration_ms": outcome.duration_ms,
            },
        )

        return outcome

    async def _notify_listeners(self, snapshot: CacheSnapshot, outcome: RefreshOutcome) -> None:
        for listener in list(self._listeners):
            try:
                await listener(snapshot)
            except Exception as e:
                self._log_error("Refresh listener failed", e)
                outcome.errors.append(f"Listener error: {e}")

    def _refresh_failed(self, message: str, error: Exception, start_time: float) -> RefreshOutcome:
        self._log_error(message, error)
        if self._snapshot is not None:
            self._log(
                LogLevel.WARN,
                "Refresh failed, keeping stale cached data",
                {"last_refreshed_at": self._snapshot.refreshed_at},
            )
        return RefreshOutcome(
            success=False,
            duration_ms=(time.perf_counter() - start_time) * 1000,
            errors=[f"{message}: {error}"],
        )

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    async def enqueue_refresh(self) -> RefreshOutcome:
        """
        Refresh now, then keep refreshing every cache TTL.

        The first refresh completes before this returns; the loop that follows
        replaces any loop armed earlier.
        """
        outcome = await self.refresh()
        self._scheduler.start(run_immediately=False)
        return outcome

    async def stop(self) -> None:
        """Cancel the pending refresh loop, if any."""
        await self._scheduler.stop()

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, self.COMPONENT, message, data)

    def _log_error(self, message: str, error: Exception) -> None:
        if self._logger:
            self._logger.error(self.COMPONENT, message, error)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
