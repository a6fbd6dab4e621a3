"""
In-memory collaborators shared by the test modules.

FakeRegistryReader and FakeInventory satisfy the RegistryReader and
InventoryFetcher protocols; RecordingSleep stands in for asyncio.sleep.
"""

import asyncio
import base64
from typing import Optional

from anyone_dns.hidden_service import compute_checksum
from anyone_dns.namehash import token_id


VALID_ANYONE_ADDRESS = "6zctvi63m7xxbd34hxn2uvnaw5ao7sec4l3k4bflzeqtve5jleh6ddyd.anyone"
VALID_ANON_ADDRESS = "25njqamcweflpvkl73j4szahhihoc4xt3ktcgjnpaingr5yhkenc2hqd.anon"
INVALID_CHECKSUM_ADDRESS = "6zctvi63m7xxbd34hxn2uvnaw5ao7sec4l3k4bflzeqtve5jleh6dzzz.anyone"

CONTRACT_ADDRESS = "0x" + "ab" * 20


def make_address(pubkey: bytes, tld: str = "anyone", version: bytes = b"\x03") -> str:
    """Build a checksum-valid hidden service address from a 32 byte public key."""
    checksum = compute_checksum(pubkey, version, tld)
    label = base64.b32encode(pubkey + checksum + version).decode("ascii").lower()
    return f"{label}.{tld}"


class RecordingSleep:
    """Records requested delays instead of waiting."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeRegistryReader:
    """
    Registry keyed by domain name.

    Values map a name to its address record; ``errors`` map a name to an
    exception raised when that name is read.
    """

    def __init__(
        self,
        values: Optional[dict[str, str]] = None,
        errors: Optional[dict[str, Exception]] = None,
        delay: float = 0.0,
    ) -> None:
        self._values_by_token = {token_id(name): value for name, value in (values or {}).items()}
        self._errors_by_token = {token_id(name): error for name, error in (errors or {}).items()}
        self._delay = delay
        self.calls: list[tuple[list[str], int]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def get_many(self, keys, token) -> list[str]:
        self.calls.append((list(keys), token))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self._delay:
                await asyncio.sleep(self._delay)
            else:
                await asyncio.sleep(0)
            if token in self._errors_by_token:
                raise self._errors_by_token[token]
            return [self._values_by_token.get(token, "") for _ in keys]
        finally:
            self.in_flight -= 1


class FakeInventory:
    """Inventory returning a queued sequence of responses (lists or exceptions)."""

    def __init__(self, *responses) -> None:
        self._responses = list(responses)
        self.fetch_count = 0

    def push(self, response) -> None:
        self._responses.append(response)

    async def fetch_entries(self) -> list:
        self.fetch_count += 1
        response = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(response, Exception):
            raise response
        return list(response)


def inventory_of(*names: str) -> list[dict]:
    return [{"name": name} for name in names]
