"""
Domain name validation and normalization.

Provides TLD extraction, the supported-TLD allow-list check, and the
canonical form names are hashed in (lowercase, UTS-46 mapped).
"""

from dataclasses import dataclass
from typing import Iterable, Optional

import idna

from .enums import DomainValidationErrorCode
from .exceptions import ValidationError


@dataclass
class DomainValidationError:
    """Structured error information for domain validation failures."""

    code: DomainValidationErrorCode
    message: str
    details: dict


@dataclass
class DomainValidationResult:
    """Result of domain validation operation."""

    valid: bool
    canonical_domain: Optional[str]
    error: Optional[DomainValidationError]


def extract_tld(name: str) -> str:
    """Return the lowercase text after the final dot (the whole name if there is none)."""
    return name.rsplit(".", 1)[-1].strip().lower()


class DomainValidator:
    """
    Validates names against the supported TLD list and normalizes them.

    The same allow-list applies to queried domains and to the TLD of the
    hidden service addresses the registry returns.
    """

    def __init__(self, supported_tlds: Iterable[str]) -> None:
        """
        Initialize validator with supported TLDs.

        Args:
            supported_tlds: TLDs without leading dot (e.g., ['anyone'])
        """
        self._supported_tlds = frozenset(tld.lower().lstrip(".") for tld in supported_tlds)

    @property
    def supported_tlds(self) -> frozenset[str]:
        return self._supported_tlds

    def is_supported_tld(self, tld: str) -> bool:
        return tld.lower() in self._supported_tlds

    def validate(self, raw_domain: str) -> DomainValidationResult:
        """
        Validate and normalize a domain string.

        Checks run in order: supported TLD (blank input has none),
        normalization, then empty labels.

        Args:
            raw_domain: The raw domain string to validate

        Returns:
            DomainValidationResult with the canonical form or the error
        """
        domain = (raw_domain or "").strip()
        tld = extract_tld(domain)
        if not self.is_supported_tld(tld):
            return self._invalid(
                DomainValidationErrorCode.UNSUPPORTED_TLD,
                f"TLD .{tld} is not supported for name {domain}",
                {
                    "raw_input": raw_domain,
                    "tld": tld,
                    "supported_tlds": sorted(self._supported_tlds),
                },
            )

        try:
            canonical = self.normalize(domain)
        except ValidationError as e:
            return self._invalid(DomainValidationErrorCode.IDNA_ERROR, e.message, e.details)

        # UTS-46 maps ideographic full stops to "."
        if "" in canonical.split("."):
            return self._invalid(
                DomainValidationErrorCode.EMPTY_LABEL,
                f"Domain {domain} has an empty label",
                {"raw_input": raw_domain},
            )

        return DomainValidationResult(valid=True, canonical_domain=canonical, error=None)

    def normalize(self, domain: str) -> str:
        """
        Convert a domain to the form the registry hashes.

        ASCII names are lowercased; names with international characters are
        mapped with UTS-46 and kept in Unicode.

        Raises:
            ValidationError: If the name contains disallowed code points
        """
        domain_lower = domain.strip().lower()
        if domain_lower.isascii():
            return domain_lower

        try:
            return idna.uts46_remap(domain_lower, std3_rules=False, transitional=False)
        except idna.IDNAError as e:
            raise ValidationError(
                code=DomainValidationErrorCode.IDNA_ERROR.value,
                message=f"IDNA mapping failed: {e}",
                details={"domain": domain, "idna_error": str(e)},
            ) from e

    @staticmethod
    def _invalid(
        code: DomainValidationErrorCode, message: str, details: dict
    ) -> DomainValidationResult:
        return DomainValidationResult(
            valid=False,
            canonical_domain=None,
            error=DomainValidationError(code=code, message=message, details=details),
        )
