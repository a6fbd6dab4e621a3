"""
Enumeration types for the anyone-dns service.

These enums provide type-safe constants for resolution outcomes, error codes,
and configuration options throughout the system.
"""

from enum import Enum


class ResolutionErrorKind(Enum):
    """Why a domain could not be resolved to a hidden service address."""

    UNSUPPORTED_DOMAIN_TLD = "unsupported_domain_tld"
    UNSUPPORTED_HIDDEN_SERVICE_TLD = "unsupported_hidden_service_tld"
    RECORD_NOT_FOUND = "record_not_found"
    CHECKSUM_INVALID = "checksum_invalid"
    REGISTRY_ERROR = "registry_error"


class CacheState(Enum):
    """Lifecycle state of the cache orchestrator."""

    UNINITIALIZED = "uninitialized"
    POPULATED = "populated"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class DomainValidationErrorCode(Enum):
    """Error codes for domain validation failures."""

    UNSUPPORTED_TLD = "unsupported_tld"
    EMPTY_LABEL = "empty_label"
    IDNA_ERROR = "idna_error"


class RegistryErrorCode(Enum):
    """Error codes for registry reader operations."""

    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    SERVER_ERROR = "server_error"
    RATE_LIMITED = "rate_limited"
    PARSE_ERROR = "parse_error"
    RPC_ERROR = "rpc_error"
    EXECUTION_REVERTED = "execution_reverted"
    NO_DATA = "no_data"


class InventoryErrorCode(Enum):
    """Error codes for inventory fetch operations."""

    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    HTTP_ERROR = "http_error"
    PARSE_ERROR = "parse_error"
