"""
Property-based tests for the Domain Resolver.

The registry is an in-memory fake keyed by namehash, so every outcome kind
can be produced without a network.
"""

import asyncio
import io

from hypothesis import given, settings
from hypothesis import strategies as st

from anyone_dns.enums import LogLevel, RegistryErrorCode, ResolutionErrorKind
from anyone_dns.exceptions import RegistryError
from anyone_dns.models import ResolutionFailure, ResolutionSuccess
from anyone_dns.namehash import token_id
from anyone_dns.resolver import ADDRESS_RECORD_KEY, DomainResolver
from anyone_dns.service_logger import ServiceLogger

from fakes import (
    INVALID_CHECKSUM_ADDRESS,
    VALID_ANON_ADDRESS,
    VALID_ANYONE_ADDRESS,
    FakeRegistryReader,
    make_address,
)


label_strategy = st.text(
    alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz0123456789"),
    min_size=1,
    max_size=20,
)


def resolve(reader, domain: str, supported=("anyone",), **kwargs):
    resolver = DomainResolver(reader, supported, **kwargs)
    return asyncio.run(resolver.resolve(domain))


class TestSuccessfulResolution:
    """A valid record resolves to itself."""

    def test_known_address_resolves(self) -> None:
        reader = FakeRegistryReader({"example.anyone": VALID_ANYONE_ADDRESS})
        result = resolve(reader, "example.anyone")

        assert result == ResolutionSuccess(domain="example.anyone", address=VALID_ANYONE_ADDRESS)
        assert result.ok

    def test_reads_address_key_for_namehash(self) -> None:
        reader = FakeRegistryReader({"example.anyone": VALID_ANYONE_ADDRESS})
        resolve(reader, "example.anyone")

        assert reader.calls == [([ADDRESS_RECORD_KEY], token_id("example.anyone"))]

    def test_uppercase_name_hashes_canonical_form(self) -> None:
        reader = FakeRegistryReader({"example.anyone": VALID_ANYONE_ADDRESS})
        result = resolve(reader, "Example.ANYONE")

        assert isinstance(result, ResolutionSuccess)
        # The result keeps the name as asked
        assert result.domain == "Example.ANYONE"

    @given(label=label_strategy, pubkey=st.binary(min_size=32, max_size=32))
    @settings(max_examples=50)
    def test_any_valid_record_resolves(self, label: str, pubkey: bytes) -> None:
        domain = f"{label}.anyone"
        address = make_address(pubkey)
        reader = FakeRegistryReader({domain: f"  {address}\n"})

        result = resolve(reader, domain)

        assert result == ResolutionSuccess(domain=domain, address=address)


class TestFailureKinds:
    """Each failure condition maps to its own kind."""

    @given(label=label_strategy, blank=st.text(alphabet=" \t\n", max_size=4))
    @settings(max_examples=50)
    def test_blank_record_is_not_found(self, label: str, blank: str) -> None:
        domain = f"{label}.anyone"
        reader = FakeRegistryReader({domain: blank})

        result = resolve(reader, domain)

        assert isinstance(result, ResolutionFailure)
        assert result.error == ResolutionErrorKind.RECORD_NOT_FOUND

    @given(label=label_strategy, tld=st.sampled_from(["com", "eth", "anon", "crypto"]))
    @settings(max_examples=50)
    def test_unsupported_domain_tld_skips_registry(self, label: str, tld: str) -> None:
        reader = FakeRegistryReader()
        result = resolve(reader, f"{label}.{tld}")

        assert result.error == ResolutionErrorKind.UNSUPPORTED_DOMAIN_TLD
        assert reader.calls == []

    def test_unsupported_hidden_service_tld(self) -> None:
        reader = FakeRegistryReader({"example.anyone": VALID_ANON_ADDRESS})
        result = resolve(reader, "example.anyone")

        assert result.error == ResolutionErrorKind.UNSUPPORTED_HIDDEN_SERVICE_TLD

    def test_anon_addresses_accepted_when_supported(self) -> None:
        reader = FakeRegistryReader({"example.anyone": VALID_ANON_ADDRESS})
        result = resolve(reader, "example.anyone", supported=("anyone", "anon"))

        assert result == ResolutionSuccess(domain="example.anyone", address=VALID_ANON_ADDRESS)

    def test_invalid_checksum(self) -> None:
        reader = FakeRegistryReader({"example.anyone": INVALID_CHECKSUM_ADDRESS})
        result = resolve(reader, "example.anyone")

        assert result.error == ResolutionErrorKind.CHECKSUM_INVALID

    def test_garbage_record_is_checksum_invalid(self) -> None:
        reader = FakeRegistryReader({"example.anyone": "not a hidden service.anyone"})
        result = resolve(reader, "example.anyone")

        assert result.error == ResolutionErrorKind.CHECKSUM_INVALID

    def test_symbols_in_name_are_queried(self) -> None:
        reader = FakeRegistryReader()
        result = resolve(reader, "my/site.anyone")

        assert result.error == ResolutionErrorKind.RECORD_NOT_FOUND
        assert reader.calls == [([ADDRESS_RECORD_KEY], token_id("my/site.anyone"))]

    @given(blank=st.text(alphabet=" \t\n", max_size=5))
    @settings(max_examples=20)
    def test_blank_name_is_unsupported_tld(self, blank: str) -> None:
        reader = FakeRegistryReader()
        result = resolve(reader, blank)

        assert result.error == ResolutionErrorKind.UNSUPPORTED_DOMAIN_TLD
        assert reader.calls == []

    def test_empty_label_is_not_queried(self) -> None:
        reader = FakeRegistryReader()

        for name in (".anyone", "a..anyone"):
            result = resolve(reader, name)
            assert result.error == ResolutionErrorKind.RECORD_NOT_FOUND

        assert reader.calls == []


class TestRegistryFailures:
    """Collaborator failures become REGISTRY_ERROR values, never exceptions."""

    @given(code=st.sampled_from(list(RegistryErrorCode)))
    @settings(max_examples=20)
    def test_registry_error_codes(self, code: RegistryErrorCode) -> None:
        error = RegistryError(code=code.value, message="boom")
        reader = FakeRegistryReader(errors={"example.anyone": error})

        result = resolve(reader, "example.anyone")

        assert result.error == ResolutionErrorKind.REGISTRY_ERROR
        assert "boom" in result.message

    def test_unexpected_exception(self) -> None:
        reader = FakeRegistryReader(errors={"example.anyone": RuntimeError("socket gone")})
        result = resolve(reader, "example.anyone")

        assert result.error == ResolutionErrorKind.REGISTRY_ERROR

    def test_call_timeout(self) -> None:
        reader = FakeRegistryReader({"example.anyone": VALID_ANYONE_ADDRESS}, delay=1.0)
        result = resolve(reader, "example.anyone", call_timeout_seconds=0.01)

        assert result.error == ResolutionErrorKind.REGISTRY_ERROR
        assert "timed out" in result.message

    def test_empty_value_list(self) -> None:
        class EmptyReader:
            async def get_many(self, keys, token):
                return []

        result = resolve(EmptyReader(), "example.anyone")
        assert result.error == ResolutionErrorKind.REGISTRY_ERROR


class TestOutcomeLogging:
    """One log entry per outcome, at a level matching its severity."""

    def test_success_and_failure_are_logged(self) -> None:
        logger = ServiceLogger(output_stream=io.StringIO(), level=LogLevel.DEBUG)
        reader = FakeRegistryReader(
            values={"good.anyone": VALID_ANYONE_ADDRESS},
            errors={"bad.anyone": RuntimeError("down")},
        )
        resolver = DomainResolver(reader, ["anyone"], logger=logger)

        asyncio.run(resolver.resolve("good.anyone"))
        asyncio.run(resolver.resolve("bad.anyone"))
        asyncio.run(resolver.resolve("missing.anyone"))

        levels = [entry.level for entry in logger.entries]
        assert levels == [LogLevel.DEBUG, LogLevel.ERROR, LogLevel.WARN]
        assert logger.entries[1].data["error"] == "registry_error"
