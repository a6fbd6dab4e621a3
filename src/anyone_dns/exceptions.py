"""
Exception classes for the anyone-dns service.

All exceptions inherit from AnyoneDnsError and provide structured
error information with codes, messages, and optional details.
Resolution outcomes are never raised; these are reserved for collaborators
(registry, inventory) and for startup configuration problems.
"""

from typing import Optional


class AnyoneDnsError(Exception):
    """Base exception for all anyone-dns errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(AnyoneDnsError):
    """Raised at startup when required settings are missing or invalid."""

    pass


class ValidationError(AnyoneDnsError):
    """Raised when a domain name cannot be normalized."""

    pass


class RegistryError(AnyoneDnsError):
    """Raised by registry readers on transport, RPC or decoding failures."""

    pass


class InventoryError(AnyoneDnsError):
    """Raised when the domain inventory cannot be fetched or parsed."""

    pass
