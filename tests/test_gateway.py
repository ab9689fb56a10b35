"""
Tests for LedgerGateway against a mocked full node.
"""
import pytest
import requests

from hyperfill_sdk.exceptions import (
    ConfirmationTimeout, RemoteReadError, ResourceNotFound, TransactionRejected
)
from hyperfill_sdk.ledger.gateway import LedgerGateway, validate_node_url
from hyperfill_sdk.models import ViewCall

NODE_URL = "https://node.example.com/v1"
TX_HASH = "0x" + "ab" * 32


@pytest.fixture
def gateway():
    gw = LedgerGateway(NODE_URL, confirm_timeout=5, poll_interval=0)
    yield gw
    gw.close()


def view_call(name, *args):
    return ViewCall(function=f"0xcafe::hyperfill_vault::{name}", arguments=list(args))


class TestValidateNodeUrl:
    def test_https_allowed(self):
        validate_node_url("https://api.testnet.aptoslabs.com/v1")

    def test_localhost_http_allowed(self):
        validate_node_url("http://localhost:8080/v1")
        validate_node_url("http://127.0.0.1:8080/v1")

    def test_remote_http_rejected(self):
        with pytest.raises(ValueError) as exc_info:
            validate_node_url("http://node.example.com/v1")
        assert "https://" in str(exc_info.value)

    def test_constructor_validates(self):
        with pytest.raises(ValueError):
            LedgerGateway("http://node.example.com/v1")


class TestView:
    """Single view calls."""

    @pytest.mark.asyncio
    async def test_view_posts_body(self, gateway, requests_mock):
        adapter = requests_mock.post(f"{NODE_URL}/view", json=["5000000000"])

        result = await gateway.view(view_call("get_total_assets", "0xcafe"))

        assert result == ["5000000000"]
        assert adapter.last_request.json() == {
            "function": "0xcafe::hyperfill_vault::get_total_assets",
            "type_arguments": [],
            "arguments": ["0xcafe"],
        }

    @pytest.mark.asyncio
    async def test_view_error_status(self, gateway, requests_mock):
        requests_mock.post(
            f"{NODE_URL}/view",
            status_code=400,
            json={"message": "FUNCTION_NOT_FOUND", "error_code": "invalid_input"}
        )

        with pytest.raises(RemoteReadError) as exc_info:
            await gateway.view(view_call("missing"))
        assert exc_info.value.status_code == 400
        assert "FUNCTION_NOT_FOUND" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_view_connection_error(self, gateway, requests_mock):
        requests_mock.post(f"{NODE_URL}/view", exc=requests.ConnectionError("refused"))

        with pytest.raises(RemoteReadError) as exc_info:
            await gateway.view(view_call("get_total_assets"))
        assert "refused" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_view_non_list_response(self, gateway, requests_mock):
        requests_mock.post(f"{NODE_URL}/view", json={"unexpected": True})

        with pytest.raises(RemoteReadError):
            await gateway.view(view_call("get_total_assets"))

    @pytest.mark.asyncio
    async def test_view_invalid_json(self, gateway, requests_mock):
        requests_mock.post(f"{NODE_URL}/view", text="<html>bad gateway</html>")

        with pytest.raises(RemoteReadError):
            await gateway.view(view_call("get_total_assets"))


class TestBatchView:
    """Settle-all batch semantics."""

    @pytest.mark.asyncio
    async def test_one_failure_does_not_affect_others(self, gateway, requests_mock):
        def respond(request, context):
            function = request.json()["function"]
            if function.endswith("::call_3"):
                context.status_code = 500
                return {"message": "internal error"}
            return [function.rsplit("_", 1)[-1]]

        requests_mock.post(f"{NODE_URL}/view", json=respond)
        calls = [view_call(f"call_{i}") for i in range(8)]

        results = await gateway.batch_view(calls)

        assert len(results) == 8
        for index, result in enumerate(results):
            assert result.call == calls[index]
            if index == 3:
                assert not result.ok
                assert isinstance(result.error, RemoteReadError)
                assert result.value is None
            else:
                assert result.ok
                assert result.value == [str(index)]

    @pytest.mark.asyncio
    async def test_empty_batch(self, gateway):
        assert await gateway.batch_view([]) == []


class TestResources:
    """Account resource reads."""

    def test_resource_path_quotes_generics(self):
        path = LedgerGateway.resource_path("0xa", "0x1::coin::CoinStore<0x1::aptos_coin::AptosCoin>")
        assert path == "/accounts/0xa/resource/0x1::coin::CoinStore%3C0x1::aptos_coin::AptosCoin%3E"

    @pytest.mark.asyncio
    async def test_get_resource(self, gateway, requests_mock):
        resource_type = "0xcafe::hyperfill_vault::UserPosition"
        requests_mock.get(
            f"{NODE_URL}{LedgerGateway.resource_path('0xa', resource_type)}",
            json={"type": resource_type, "data": {"shares": "10"}}
        )

        resource = await gateway.get_resource("0xa", resource_type)

        assert resource["data"]["shares"] == "10"
        assert await gateway.resource_exists("0xa", resource_type) is True

    @pytest.mark.asyncio
    async def test_missing_resource(self, gateway, requests_mock):
        resource_type = "0xcafe::hyperfill_vault::UserPosition"
        requests_mock.get(
            f"{NODE_URL}{LedgerGateway.resource_path('0xa', resource_type)}",
            status_code=404,
            json={"error_code": "resource_not_found"}
        )

        with pytest.raises(ResourceNotFound):
            await gateway.get_resource("0xa", resource_type)
        assert await gateway.resource_exists("0xa", resource_type) is False

    @pytest.mark.asyncio
    async def test_resource_server_error_propagates(self, gateway, requests_mock):
        resource_type = "0xcafe::hyperfill_vault::UserPosition"
        requests_mock.get(
            f"{NODE_URL}{LedgerGateway.resource_path('0xa', resource_type)}",
            status_code=503,
            text="unavailable"
        )

        with pytest.raises(RemoteReadError) as exc_info:
            await gateway.resource_exists("0xa", resource_type)
        assert not isinstance(exc_info.value, ResourceNotFound)
        assert exc_info.value.status_code == 503


class TestWaitForTransaction:
    """Finality polling."""

    @pytest.mark.asyncio
    async def test_pending_then_committed(self, gateway, requests_mock):
        adapter = requests_mock.get(
            f"{NODE_URL}/transactions/by_hash/{TX_HASH}",
            [
                {"status_code": 404, "json": {"error_code": "transaction_not_found"}},
                {"json": {"type": "pending_transaction", "hash": TX_HASH}},
                {"json": {"type": "user_transaction", "hash": TX_HASH, "success": True, "version": "42"}},
            ]
        )

        txn = await gateway.wait_for_transaction(TX_HASH)

        assert txn["version"] == "42"
        assert adapter.call_count == 3

    @pytest.mark.asyncio
    async def test_rejected(self, gateway, requests_mock):
        requests_mock.get(
            f"{NODE_URL}/transactions/by_hash/{TX_HASH}",
            json={
                "type": "user_transaction",
                "hash": TX_HASH,
                "success": False,
                "vm_status": "Move abort: E_PAUSED",
            }
        )

        with pytest.raises(TransactionRejected) as exc_info:
            await gateway.wait_for_transaction(TX_HASH)
        assert exc_info.value.vm_status == "Move abort: E_PAUSED"
        assert exc_info.value.transaction_hash == TX_HASH

    @pytest.mark.asyncio
    async def test_timeout(self, requests_mock):
        gateway = LedgerGateway(NODE_URL, confirm_timeout=0, poll_interval=0)
        requests_mock.get(
            f"{NODE_URL}/transactions/by_hash/{TX_HASH}",
            json={"type": "pending_transaction", "hash": TX_HASH}
        )

        with pytest.raises(ConfirmationTimeout) as exc_info:
            await gateway.wait_for_transaction(TX_HASH)
        assert exc_info.value.transaction_hash == TX_HASH
        gateway.close()
