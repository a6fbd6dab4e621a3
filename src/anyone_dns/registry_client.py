"""
Registry reader for the on-chain name registry.

This module provides the RegistryReader protocol the resolver depends on and
an async JSON-RPC implementation that calls the registry proxy reader's
``getMany(string[],uint256)`` view through ``eth_call``.
"""

import itertools
import time
from typing import Optional, Protocol, Sequence, runtime_checkable

import httpx
from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_hash.auto import keccak

from .config import RetryConfig
from .enums import RegistryErrorCode
from .exceptions import RegistryError
from .retry_manager import RetryManager


GET_MANY_SIGNATURE = "getMany(string[],uint256)"
GET_MANY_SELECTOR = keccak(GET_MANY_SIGNATURE.encode("ascii"))[:4]

# Provider error messages that mean throttling
RATE_LIMIT_PHRASES = ("rate limit", "request limit", "too many requests")


@runtime_checkable
class RegistryReader(Protocol):
    """Reads named record values for a token id."""

    async def get_many(self, keys: Sequence[str], token_id: int) -> list[str]:
        """Return one value per key, in key order."""
        ...


def encode_get_many_call(keys: Sequence[str], token_id: int) -> bytes:
    """Build the calldata for ``getMany(keys, tokenId)``."""
    return GET_MANY_SELECTOR + encode(["string[]", "uint256"], [list(keys), token_id])


def decode_get_many_result(data: bytes) -> list[str]:
    """
    Decode the ``string[]`` returned by ``getMany``.

    Raises:
        RegistryError: If the return data is empty or not a string array
    """
    if not data:
        raise RegistryError(
            code=RegistryErrorCode.NO_DATA.value,
            message="execution reverted (no data present)",
        )
    try:
        (values,) = decode(["string[]"], data)
    except (DecodingError, ValueError) as e:
        raise RegistryError(
            code=RegistryErrorCode.PARSE_ERROR.value,
            message=f"Could not decode getMany result: {e}",
            details={"data_length": len(data)},
        ) from e
    return list(values)


class JsonRpcRegistryReader:
    """
    Async JSON-RPC client for the registry proxy reader contract.

    Transient failures are retried with backoff; reverts and malformed
    responses are raised immediately as RegistryError.
    """

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        timeout: float = 10.0,
        retry_config: Optional[RetryConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_manager: Optional[RetryManager] = None,
    ) -> None:
        """
        Initialize the registry reader.

        Args:
            rpc_url: JSON-RPC endpoint URL
            contract_address: Address of the registry proxy reader contract
            timeout: Request timeout in seconds
            retry_config: Retry behavior for transient errors
            transport: Optional httpx transport (used by tests)
            retry_manager: Optional pre-built retry manager
        """
        self._rpc_url = rpc_url
        self._contract_address = contract_address
        self._timeout = timeout
        self._transport = transport
        self._retry_manager = retry_manager or RetryManager(retry_config or RetryConfig())
        self._client: Optional[httpx.AsyncClient] = None
        self._request_ids = itertools.count(1)

    async def __aenter__(self) -> "JsonRpcRegistryReader":
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
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def get_many(self, keys: Sequence[str], token_id: int) -> list[str]:
        """
        Read record values for ``token_id``.

        Raises:
            RegistryError: On transport, RPC, revert or decoding failures
        """
        calldata = encode_get_many_call(keys, token_id)

        retry_result = await self._retry_manager.execute_with_retry(
            lambda: self.eth_call(calldata)
        )
        if not retry_result.success:
            error = retry_result.last_error
            if isinstance(error, RegistryError):
                error.details.setdefault("attempts", retry_result.attempts)
                raise error
            raise RegistryError(
                code=RegistryErrorCode.NETWORK_ERROR.value,
                message=f"Registry call failed: {error}",
                details={"attempts": retry_result.attempts},
            ) from error

        values = decode_get_many_result(retry_result.result)
        if len(values) != len(keys):
            raise RegistryError(
                code=RegistryErrorCode.PARSE_ERROR.value,
                message=f"Expected {len(keys)} values from getMany, got {len(values)}",
            )
        return values

    async def eth_call(self, calldata: bytes) -> bytes:
        """Run a read-only call against the registry contract and return its raw output."""
        result = await self.request(
            "eth_call",
            [{"to": self._contract_address, "data": "0x" + calldata.hex()}, "latest"],
        )
        if not isinstance(result, str) or not result.startswith("0x"):
            raise RegistryError(
                code=RegistryErrorCode.PARSE_ERROR.value,
                message="eth_call result is not a hex string",
                details={"result": repr(result)[:200]},
            )
        try:
            return bytes.fromhex(result[2:])
        except ValueError as e:
            raise RegistryError(
                code=RegistryErrorCode.PARSE_ERROR.value,
                message=f"eth_call result is not valid hex: {e}",
            ) from e

    async def chain_id(self) -> int:
        """Return the chain id reported by the endpoint (used as a connectivity probe)."""
        result = await self.request("eth_chainId", [])
        try:
            return int(result, 16)
        except (TypeError, ValueError) as e:
            raise RegistryError(
                code=RegistryErrorCode.PARSE_ERROR.value,
                message=f"eth_chainId result is not a hex quantity: {result!r}",
            ) from e

    async def request(self, method: str, params: list) -> object:
        """
        Send a single JSON-RPC request and return its ``result`` member.

        Raises:
            RegistryError: With a code describing the failure
        """
        client = self._ensure_client()
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": method,
            "params": params,
        }
        start_time = time.perf_counter()

        try:
            response = await client.post(self._rpc_url, json=payload)
        except httpx.TimeoutException as e:
            raise RegistryError(
                code=RegistryErrorCode.TIMEOUT.value,
                message=f"JSON-RPC {method} timed out after {self._timeout}s",
                details={"method": method},
            ) from e
        except httpx.HTTPError as e:
            raise RegistryError(
                code=RegistryErrorCode.NETWORK_ERROR.value,
                message=f"JSON-RPC {method} transport error: {e}",
                details={"method": method},
            ) from e

        details = {
            "method": method,
            "http_status_code": response.status_code,
            "response_time_ms": (time.perf_counter() - start_time) * 1000,
        }

        if response.status_code == 429:
            raise RegistryError(
                code=RegistryErrorCode.RATE_LIMITED.value,
                message="JSON-RPC endpoint rate limited the request",
                details=details,
            )
        if response.status_code >= 500:
            raise RegistryError(
                code=RegistryErrorCode.SERVER_ERROR.value,
                message=f"JSON-RPC endpoint returned HTTP {response.status_code}",
                details=details,
            )
        if response.status_code >= 400:
            raise RegistryError(
                code=RegistryErrorCode.RPC_ERROR.value,
                message=f"JSON-RPC endpoint returned HTTP {response.status_code}",
                details=details,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise RegistryError(
                code=RegistryErrorCode.PARSE_ERROR.value,
                message="JSON-RPC response is not valid JSON",
                details=details,
            ) from e

        if not isinstance(body, dict):
            raise RegistryError(
                code=RegistryErrorCode.PARSE_ERROR.value,
                message="JSON-RPC response is not an object",
                details=details,
            )

        error = body.get("error")
        if error is not None:
            raise self._rpc_error(error, details)

        if "result" not in body:
            raise RegistryError(
                code=RegistryErrorCode.PARSE_ERROR.value,
                message="JSON-RPC response has neither result nor error",
                details=details,
            )
        return body["result"]

    @staticmethod
    def _rpc_error(error: object, details: dict) -> RegistryError:
        if isinstance(error, dict):
            message = str(error.get("message", ""))
            rpc_code = error.get("code")
        else:
            message = str(error)
            rpc_code = None

        details = {**details, "rpc_code": rpc_code}
        if "revert" in message.lower():
            code = RegistryErrorCode.EXECUTION_REVERTED
        elif rpc_code == -32005 or any(phrase in message.lower() for phrase in RATE_LIMIT_PHRASES):
            code = RegistryErrorCode.RATE_LIMITED
        else:
            code = RegistryErrorCode.RPC_ERROR

        return RegistryError(
            code=code.value,
            message=f"JSON-RPC error: {message or 'unknown error'}",
            details=details,
        )
