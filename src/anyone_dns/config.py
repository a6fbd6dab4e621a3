"""
Configuration dataclasses for the anyone-dns service.

This module defines the configuration structures used throughout the system
(registry and inventory endpoints, cache TTL, batching, retry and logging) and
loads them from the process environment, optionally seeded from a ``.env`` file.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

from .exceptions import ConfigurationError


DEFAULT_CACHE_TTL_MS = 300_000
DEFAULT_SUPPORTED_TLDS = ["anyone"]

CONTRACT_ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")

LOG_LEVELS = ("debug", "info", "warn", "error")
LOG_FORMATS = ("json", "text", "both")


@dataclass
class BatchConfig:
    """Bulk resolution tuning knobs."""

    batch_size: int = 100
    delay_ms: int = 1000


@dataclass
class RetryConfig:
    """Retry behavior for registry calls."""

    max_retries: int = 2
    base_delay_seconds: float = 0.5
    max_delay_seconds: float = 10.0
    retryable_errors: list[str] = field(
        default_factory=lambda: ["timeout", "network_error", "server_error", "rate_limited"]
    )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass
class ServiceConfig:
    """Main service configuration combining all sub-configurations."""

    json_rpc_url: str
    anyone_api_base_url: str
    registry_contract_address: str
    cache_ttl_ms: int = DEFAULT_CACHE_TTL_MS
    supported_tlds: list[str] = field(default_factory=lambda: list(DEFAULT_SUPPORTED_TLDS))
    registry_call_timeout_seconds: float = 10.0
    inventory_timeout_seconds: float = 10.0
    batch: BatchConfig = field(default_factory=BatchConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def cache_ttl_seconds(self) -> float:
        return self.cache_ttl_ms / 1000

    def validate(self) -> list[str]:
        """
        Check every field and collect the problems found.

        Returns:
            List of human-readable problems; empty when the config is usable
        """
        errors: list[str] = []

        if not _is_http_url(self.json_rpc_url):
            errors.append(f"JSON_RPC_URL must be an http(s) URL: {self.json_rpc_url!r}")
        if not _is_http_url(self.anyone_api_base_url):
            errors.append(
                f"ANYONE_API_BASE_URL must be an http(s) URL: {self.anyone_api_base_url!r}"
            )
        if not CONTRACT_ADDRESS_PATTERN.match(self.registry_contract_address or ""):
            errors.append(
                "UNS_REGISTRY_PROXY_READER_ADDRESS must be a 0x-prefixed 20 byte hex address"
            )
        if self.cache_ttl_ms < 0:
            errors.append("ANYONE_DOMAINS_CACHE_TTL_MS must be a non-negative integer")
        if not self.supported_tlds:
            errors.append("SUPPORTED_TLDS must name at least one TLD")
        if self.registry_call_timeout_seconds <= 0:
            errors.append("REGISTRY_CALL_TIMEOUT_SECONDS must be positive")
        if self.batch.batch_size < 1:
            errors.append("RESOLVE_BATCH_SIZE must be at least 1")
        if self.batch.delay_ms < 0:
            errors.append("RESOLVE_BATCH_DELAY_MS must be non-negative")
        if self.retry.max_retries < 0:
            errors.append("REGISTRY_MAX_RETRIES must be non-negative")
        if self.logging.level not in LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")
        if self.logging.output_format not in LOG_FORMATS:
            errors.append(f"LOG_FORMAT must be one of {', '.join(LOG_FORMATS)}")

        return errors


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value or "")
    return parsed.scheme.lower() in ("http", "https") and bool(parsed.netloc)


def _parse_int(
    env: Mapping[str, str],
    name: str,
    default: int,
    errors: list[str],
) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip(), 10)
    except ValueError:
        errors.append(f"{name} must be an integer, got {raw!r}")
        return default


def _parse_float(
    env: Mapping[str, str],
    name: str,
    default: float,
    errors: list[str],
) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        errors.append(f"{name} must be a number, got {raw!r}")
        return default


def parse_tld_list(value: str) -> list[str]:
    """Split a comma/whitespace separated TLD list, dropping dots and duplicates."""
    seen: set[str] = set()
    tlds: list[str] = []
    for chunk in value.replace(",", " ").split():
        tld = chunk.strip().lstrip(".").lower()
        if tld and tld not in seen:
            seen.add(tld)
            tlds.append(tld)
    return tlds


def load_config_from_env(
    environ: Optional[Mapping[str, str]] = None,
    env_file: Optional[Path] = None,
) -> ServiceConfig:
    """
    Build the service configuration from environment variables.

    When ``environ`` is not given the process environment is used, after
    loading ``env_file`` (or a ``.env`` in the working directory) without
    overriding variables that are already set.

    Raises:
        ConfigurationError: If required values are missing or any value is invalid
    """
    if environ is None:
        if env_file is not None:
            load_dotenv(dotenv_path=env_file)
        else:
            load_dotenv()
        environ = os.environ

    errors: list[str] = []

    required = {}
    for name in ("JSON_RPC_URL", "ANYONE_API_BASE_URL", "UNS_REGISTRY_PROXY_READER_ADDRESS"):
        value = (environ.get(name) or "").strip()
        if not value:
            errors.append(f"{name} is not set")
        required[name] = value

    supported_tlds = parse_tld_list(environ.get("SUPPORTED_TLDS", ""))

    config = ServiceConfig(
        json_rpc_url=required["JSON_RPC_URL"],
        anyone_api_base_url=required["ANYONE_API_BASE_URL"].rstrip("/"),
        registry_contract_address=required["UNS_REGISTRY_PROXY_READER_ADDRESS"],
        cache_ttl_ms=_parse_int(
            environ, "ANYONE_DOMAINS_CACHE_TTL_MS", DEFAULT_CACHE_TTL_MS, errors
        ),
        supported_tlds=supported_tlds or list(DEFAULT_SUPPORTED_TLDS),
        registry_call_timeout_seconds=_parse_float(
            environ, "REGISTRY_CALL_TIMEOUT_SECONDS", 10.0, errors
        ),
        inventory_timeout_seconds=_parse_float(
            environ, "INVENTORY_TIMEOUT_SECONDS", 10.0, errors
        ),
        batch=BatchConfig(
            batch_size=_parse_int(environ, "RESOLVE_BATCH_SIZE", 100, errors),
            delay_ms=_parse_int(environ, "RESOLVE_BATCH_DELAY_MS", 1000, errors),
        ),
        retry=RetryConfig(
            max_retries=_parse_int(environ, "REGISTRY_MAX_RETRIES", 2, errors),
        ),
        logging=LoggingConfig(
            level=(environ.get("LOG_LEVEL") or "info").strip().lower(),
            output_format=(environ.get("LOG_FORMAT") or "text").strip().lower(),
        ),
    )

    # Missing values were already reported above
    errors.extend(
        problem for problem in config.validate()
        if not any(problem.startswith(name) for name, value in required.items() if not value)
    )

    if errors:
        raise ConfigurationError(
            code="invalid_config",
            message="Invalid configuration: " + "; ".join(errors),
            details={"errors": errors},
        )

    return config
