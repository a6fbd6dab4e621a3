"""
Anyone DNS - name resolution for the anyone TLD.

This package resolves human-readable ``.anyone`` names to hidden service
addresses through an on-chain record registry, validates the returned
addresses, and keeps a periodically refreshed cache of every registered name.
"""

__version__ = "0.1.0"

from anyone_dns.exceptions import (
    AnyoneDnsError,
    ConfigurationError,
    ValidationError,
    RegistryError,
    InventoryError,
)
from anyone_dns.enums import (
    ResolutionErrorKind,
    CacheState,
    LogLevel,
    DomainValidationErrorCode,
    RegistryErrorCode,
    InventoryErrorCode,
)
from anyone_dns.config import (
    BatchConfig,
    RetryConfig,
    LoggingConfig,
    ServiceConfig,
    load_config_from_env,
)
from anyone_dns.models import (
    ResolutionSuccess,
    ResolutionFailure,
    ResolutionResult,
    CacheSnapshot,
    RefreshOutcome,
    build_hosts_text,
)
from anyone_dns.hidden_service import (
    compute_checksum,
    is_valid_hidden_service_address,
)
from anyone_dns.namehash import (
    namehash,
    token_id,
)
from anyone_dns.domain_validator import (
    DomainValidator,
    DomainValidationResult,
    DomainValidationError,
)
from anyone_dns.service_logger import (
    ServiceLogger,
    LogEntry,
)
from anyone_dns.retry_manager import (
    RetryManager,
    RetryResult,
)
from anyone_dns.registry_client import (
    RegistryReader,
    JsonRpcRegistryReader,
)
from anyone_dns.inventory_client import (
    InventoryFetcher,
    InventoryClient,
)
from anyone_dns.resolver import (
    DomainResolver,
    ADDRESS_RECORD_KEY,
)
from anyone_dns.bulk_resolver import (
    BulkResolver,
)
from anyone_dns.scheduler import (
    RefreshScheduler,
)
from anyone_dns.orchestrator import (
    CacheOrchestrator,
)
from anyone_dns.self_test import (
    SelfTest,
    SelfTestResult,
    EndpointTestResult,
    ConfigValidationResult,
    run_self_test,
)

__all__ = [
    # Exceptions
    "AnyoneDnsError",
    "ConfigurationError",
    "ValidationError",
    "RegistryError",
    "InventoryError",
    # Enums
    "ResolutionErrorKind",
    "CacheState",
    "LogLevel",
    "DomainValidationErrorCode",
    "RegistryErrorCode",
    "InventoryErrorCode",
    # Configuration
    "BatchConfig",
    "RetryConfig",
    "LoggingConfig",
    "ServiceConfig",
    "load_config_from_env",
    # Models
    "ResolutionSuccess",
    "ResolutionFailure",
    "ResolutionResult",
    "CacheSnapshot",
    "RefreshOutcome",
    "build_hosts_text",
    # Hidden service addresses
    "compute_checksum",
    "is_valid_hidden_service_address",
    # Namehash
    "namehash",
    "token_id",
    # Domain Validator
    "DomainValidator",
    "DomainValidationResult",
    "DomainValidationError",
    # Logging
    "ServiceLogger",
    "LogEntry",
    # Retry Manager
    "RetryManager",
    "RetryResult",
    # Registry
    "RegistryReader",
    "JsonRpcRegistryReader",
    # Inventory
    "InventoryFetcher",
    "InventoryClient",
    # Resolution
    "DomainResolver",
    "ADDRESS_RECORD_KEY",
    "BulkResolver",
    # Cache
    "RefreshScheduler",
    "CacheOrchestrator",
    # Self-Test
    "SelfTest",
    "SelfTestResult",
    "EndpointTestResult",
    "ConfigValidationResult",
    "run_self_test",
]
