"""
Domain resolver.

Resolves a single name to its hidden service address:
1. Check the name's TLD against the supported list and normalize it
2. Hash the name into its registry token id
3. Read the address record from the registry (bounded by a timeout)
4. Check the record is present, has a supported TLD and a valid checksum

Every outcome is returned as a ResolutionResult; nothing is raised.
"""

import asyncio
from typing import Iterable, Optional

from .domain_validator import DomainValidator, extract_tld
from .enums import (
    DomainValidationErrorCode,
    LogLevel,
    RegistryErrorCode,
    ResolutionErrorKind,
)
from .exceptions import RegistryError
from .hidden_service import is_valid_hidden_service_address
from .models import ResolutionFailure, ResolutionResult, ResolutionSuccess
from .namehash import token_id as compute_token_id
from .registry_client import RegistryReader
from .service_logger import ServiceLogger


ADDRESS_RECORD_KEY = "token.ANYONE.ANYONE.ANYONE.address"


class DomainResolver:
    """Resolves names against the registry and validates the returned address."""

    COMPONENT = "DomainResolver"

    def __init__(
        self,
        registry_reader: RegistryReader,
        supported_tlds: Iterable[str],
        call_timeout_seconds: Optional[float] = 10.0,
        logger: Optional[ServiceLogger] = None,
    ) -> None:
        """
        Initialize the resolver.

        Args:
            registry_reader: Registry collaborator providing get_many
            supported_tlds: TLDs accepted for names and returned addresses
            call_timeout_seconds: Upper bound for one registry read; None disables it
            logger: Optional logger for per-outcome events
        """
        self._registry_reader = registry_reader
        self._validator = DomainValidator(supported_tlds)
        self._call_timeout_seconds = call_timeout_seconds
        self._logger = logger

    @property
    def validator(self) -> DomainValidator:
        return self._validator

    async def resolve(self, domain: str) -> ResolutionResult:
        """
        Resolve one domain to a hidden service address.

        Args:
            domain: Name to resolve, e.g. ``example.anyone``

        Returns:
            ResolutionSuccess with the address, or ResolutionFailure with the reason
        """
        validation = self._validator.validate(domain)
        if not validation.valid:
            if validation.error.code == DomainValidationErrorCode.UNSUPPORTED_TLD:
                kind = ResolutionErrorKind.UNSUPPORTED_DOMAIN_TLD
            else:
                # A name that cannot be hashed has no registry record
                kind = ResolutionErrorKind.RECORD_NOT_FOUND
            return self._fail(domain, kind, validation.error.message, LogLevel.WARN)

        canonical = validation.canonical_domain
        token = compute_token_id(canonical)

        try:
            value = await self._read_address_record(token)
        except asyncio.TimeoutError:
            return self._fail(
                domain,
                ResolutionErrorKind.REGISTRY_ERROR,
                f"Registry call timed out after {self._call_timeout_seconds}s "
                f"for domain: {domain}",
                LogLevel.ERROR,
            )
        except RegistryError as e:
            return self._fail(
                domain,
                ResolutionErrorKind.REGISTRY_ERROR,
                f"Error fetching values from registry for domain {domain}: {e.message}",
                LogLevel.ERROR,
                {"registry_error_code": e.code},
            )
        except Exception as e:
            # Any reader failure is a registry error
            return self._fail(
                domain,
                ResolutionErrorKind.REGISTRY_ERROR,
                f"Unexpected registry failure for domain {domain}: {e}",
                LogLevel.ERROR,
                {"error_type": type(e).__name__},
            )

        address = value.strip() if isinstance(value, str) else ""
        if not address:
            return self._fail(
                domain,
                ResolutionErrorKind.RECORD_NOT_FOUND,
                f"No hidden service record found for domain: {domain}",
                LogLevel.WARN,
            )

        address_tld = extract_tld(address)
        if not self._validator.is_supported_tld(address_tld):
            return self._fail(
                domain,
                ResolutionErrorKind.UNSUPPORTED_HIDDEN_SERVICE_TLD,
                f"Hidden Service TLD .{address_tld} is not supported for hidden service "
                f"address: {address} of domain: {domain}",
                LogLevel.WARN,
            )

        if not is_valid_hidden_service_address(address):
            return self._fail(
                domain,
                ResolutionErrorKind.CHECKSUM_INVALID,
                f"Invalid hidden service address checksum for address: "
                f"{address} of domain: {domain}",
                LogLevel.WARN,
            )

        self._log(
            LogLevel.DEBUG,
            f"Resolved {domain} to {address}",
            {"domain": domain, "address": address},
        )
        return ResolutionSuccess(domain=domain, address=address)

    async def _read_address_record(self, token: int) -> str:
        call = self._registry_reader.get_many([ADDRESS_RECORD_KEY], token)
        if self._call_timeout_seconds is None:
            values = await call
        else:
            values = await asyncio.wait_for(call, timeout=self._call_timeout_seconds)

        if not values:
            raise RegistryError(
                code=RegistryErrorCode.PARSE_ERROR.value,
                message="Registry returned no values",
            )
        return values[0]

    def _fail(
        self,
        domain: str,
        kind: ResolutionErrorKind,
        message: str,
        level: LogLevel,
        data: Optional[dict] = None,
    ) -> ResolutionFailure:
        self._log(level, message, {"domain": domain, "error": kind.value, **(data or {})})
        return ResolutionFailure(domain=domain, error=kind, message=message)

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, self.COMPONENT, message, data)
