"""
Data models for the anyone-dns service.

This module defines the resolution result union and the cache snapshot that
the orchestrator swaps in after every successful refresh.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

from .enums import ResolutionErrorKind


@dataclass(frozen=True)
class ResolutionSuccess:
    """A domain resolved to a checksum-valid hidden service address."""

    domain: str
    address: str

    @property
    def ok(self) -> bool:
        return True

    def to_dict(self) -> dict:
        return {"result": "success", "domain": self.domain, "address": self.address}


@dataclass(frozen=True)
class ResolutionFailure:
    """A domain that could not be resolved, with the reason."""

    domain: str
    error: ResolutionErrorKind
    message: str = ""

    @property
    def ok(self) -> bool:
        return False

    def to_dict(self) -> dict:
        return {
            "result": "error",
            "domain": self.domain,
            "error": self.error.value,
            "message": self.message,
        }


ResolutionResult = Union[ResolutionSuccess, ResolutionFailure]


def build_hosts_text(results: list[ResolutionResult]) -> str:
    """One ``domain address`` line per success, in the given order."""
    lines = [
        f"{result.domain} {result.address}"
        for result in results
        if isinstance(result, ResolutionSuccess)
    ]
    return "\n".join(lines).strip()


@dataclass(frozen=True)
class CacheSnapshot:
    """
    Mutually consistent view of the last successful refresh.

    Inventory, mapping and hosts text always come from the same refresh pass.
    """

    domains: tuple[str, ...]
    mappings: dict[str, ResolutionResult]
    hosts_text: str
    results: tuple[ResolutionResult, ...] = ()
    refreshed_at: Optional[str] = None

    @classmethod
    def from_results(
        cls,
        domains: list[str],
        results: list[ResolutionResult],
        refreshed_at: Optional[str] = None,
    ) -> "CacheSnapshot":
        return cls(
            domains=tuple(domains),
            mappings={result.domain: result for result in results},
            hosts_text=build_hosts_text(results),
            results=tuple(results),
            refreshed_at=refreshed_at,
        )


@dataclass
class RefreshOutcome:
    """Summary of one refresh attempt, passed to refresh listeners."""

    success: bool
    domain_count: int = 0
    resolved_count: int = 0
    failed_count: int = 0
    duration_ms: float = 0.0
    errors: list[str] = field(default_factory=list)
