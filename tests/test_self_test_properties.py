"""
Tests for the startup self-test.
"""

import asyncio

import httpx

from anyone_dns.config import RetryConfig, ServiceConfig
from anyone_dns.inventory_client import InventoryClient
from anyone_dns.registry_client import JsonRpcRegistryReader
from anyone_dns.self_test import SelfTest

from fakes import CONTRACT_ADDRESS


def make_config(**overrides) -> ServiceConfig:
    values = {
        "json_rpc_url": "https://rpc.example.org",
        "anyone_api_base_url": "https://api.example.org",
        "registry_contract_address": CONTRACT_ADDRESS,
    }
    values.update(overrides)
    return ServiceConfig(**values)


def make_self_test(config, inventory_handler, rpc_handler) -> SelfTest:
    return SelfTest(
        config,
        inventory_client=InventoryClient(
            config.anyone_api_base_url, transport=httpx.MockTransport(inventory_handler)
        ),
        registry_reader=JsonRpcRegistryReader(
            config.json_rpc_url,
            config.registry_contract_address,
            transport=httpx.MockTransport(rpc_handler),
        ),
    )


def healthy_inventory(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json=[{"name": "a.anyone"}, {"name": "b.anyone"}])


def healthy_rpc(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "0x89"})


class TestConfigValidation:
    """Errors block the run; warnings do not."""

    def test_valid_config(self) -> None:
        result = SelfTest(make_config()).validate_config()
        assert result.valid
        assert result.warnings == []

    def test_warnings(self) -> None:
        config = make_config(
            json_rpc_url="http://localhost:8545",
            cache_ttl_ms=0,
            retry=RetryConfig(max_retries=0),
        )

        result = SelfTest(config).validate_config()

        assert result.valid
        assert len(result.warnings) == 3

    def test_invalid_config_skips_probes(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=[])

        config = make_config(registry_contract_address="0x12")
        result = asyncio.run(make_self_test(config, handler, handler).run())

        assert not result.success
        assert not result.config_validation.valid
        assert result.endpoint_results == []
        assert calls == []


class TestConnectivity:
    """Both endpoints are probed."""

    def test_all_endpoints_healthy(self) -> None:
        result = asyncio.run(make_self_test(make_config(), healthy_inventory, healthy_rpc).run())

        assert result.success
        by_type = {r.endpoint_type: r for r in result.endpoint_results}
        assert by_type["inventory"].detail == "2 entries"
        assert by_type["inventory"].endpoint == "https://api.example.org/anyone-domains"
        assert by_type["json_rpc"].detail == "chain id 137"

    def test_inventory_failure(self) -> None:
        result = asyncio.run(
            make_self_test(make_config(), lambda r: httpx.Response(502), healthy_rpc).run()
        )

        assert not result.success
        [failed] = result.failed_endpoints
        assert failed.endpoint_type == "inventory"
        assert failed.error == "Anyone API error, status: 502"

    def test_rpc_failure(self) -> None:
        def rpc_error(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": "method not found"}}
            )

        result = asyncio.run(make_self_test(make_config(), healthy_inventory, rpc_error).run())

        assert not result.success
        assert [r.endpoint_type for r in result.failed_endpoints] == ["json_rpc"]

    def test_print_results(self, capsys) -> None:
        self_test = make_self_test(make_config(), healthy_inventory, healthy_rpc)
        result = asyncio.run(self_test.run())

        self_test.print_results(result)

        out = capsys.readouterr().out
        assert "✓ Configuration is valid" in out
        assert "Anyone API: https://api.example.org/anyone-domains" in out
        assert "✓ Self-test passed" in out
