"""
Inventory client for the anyone API.

Fetches the authoritative list of registered names from
``<base url>/anyone-domains``; the body is a JSON array of objects that
carry at least a ``name`` field.
"""

import time
from typing import Optional, Protocol, runtime_checkable

import httpx

from .enums import InventoryErrorCode
from .exceptions import InventoryError


INVENTORY_PATH = "/anyone-domains"


@runtime_checkable
class InventoryFetcher(Protocol):
    """Source of the domain inventory."""

    async def fetch_entries(self) -> list:
        """Return the raw inventory entries."""
        ...


def extract_domain_names(entries: list) -> list[str]:
    """Keep the truthy string ``name`` of each entry, preserving order."""
    names = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        name = entry.get("name")
        if isinstance(name, str) and name.strip():
            names.append(name.strip())
    return names


class InventoryClient:
    """Async HTTP client for the domain inventory endpoint."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the inventory client.

        Args:
            base_url: Base URL of the anyone API
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def url(self) -> str:
        return f"{self._base_url}{INVENTORY_PATH}"

    async def __aenter__(self) -> "InventoryClient":
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
                follow_redirects=True,
            )
        return self._client

    async def fetch_entries(self) -> list:
        """
        Fetch the inventory.

        Returns:
            The decoded JSON array

        Raises:
            InventoryError: On transport failure, non-2xx status or a non-array body
        """
        client = self._ensure_client()
        start_time = time.perf_counter()

        try:
            response = await client.get(self.url, headers={"Accept": "application/json"})
        except httpx.TimeoutException as e:
            raise InventoryError(
                code=InventoryErrorCode.TIMEOUT.value,
                message=f"Inventory request timed out after {self._timeout}s",
                details={"request_url": self.url},
            ) from e
        except httpx.HTTPError as e:
            raise InventoryError(
                code=InventoryErrorCode.NETWORK_ERROR.value,
                message=f"Inventory request failed: {e}",
                details={"request_url": self.url},
            ) from e

        details = {
            "request_url": self.url,
            "http_status_code": response.status_code,
            "response_time_ms": (time.perf_counter() - start_time) * 1000,
        }

        if not response.is_success:
            raise InventoryError(
                code=InventoryErrorCode.HTTP_ERROR.value,
                message=f"Anyone API error, status: {response.status_code}",
                details=details,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise InventoryError(
                code=InventoryErrorCode.PARSE_ERROR.value,
                message="Inventory response is not valid JSON",
                details=details,
            ) from e

        if not isinstance(body, list):
            raise InventoryError(
                code=InventoryErrorCode.PARSE_ERROR.value,
                message="Inventory response is not a JSON array",
                details=details,
            )

        return body
