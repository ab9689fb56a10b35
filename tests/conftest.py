"""
Pytest fixtures for the Hyperfill SDK tests.
"""
import pytest

from hyperfill_sdk._rate_limited_log import reset_rate_limits
from hyperfill_sdk.config import NetworkConfig, ProtocolConfig
from hyperfill_sdk.exceptions import RemoteReadError, ResourceNotFound
from hyperfill_sdk.models import ViewResult
from hyperfill_sdk.wallet.providers import StubWalletProvider
from hyperfill_sdk.wallet.session import WalletSessionManager

VAULT = "0xcafe"
MOCK_TOKEN = "0xcafe::mock_token::MockToken"
QUOTE_COIN = "0xbeef::asset::USDT"
ACCOUNT_A = "0x" + "a" * 64
ACCOUNT_B = "0x" + "b" * 64

# 1 token = 10**8 units
TOKENS = 10 ** 8


class FakeLedger:
    """
    In-memory stand-in for ``LedgerGateway``.

    ``views`` maps a function name (last path segment) to its return values or
    to an exception to raise. ``resources`` maps a resource type to its data;
    missing types raise ``ResourceNotFound``.
    """

    def __init__(self, views=None, resources=None):
        self.views = dict(views or {})
        self.resources = dict(resources or {})
        self.view_calls = []
        self.waited = []
        self.confirmation_error = None
        self.closed = False

    async def view(self, call):
        self.view_calls.append(call)
        name = call.function_id.rsplit("::", 1)[-1]
        if name not in self.views:
            raise RemoteReadError(f"View {name} not available")
        value = self.views[name]
        if isinstance(value, Exception):
            raise value
        return value

    async def batch_view(self, calls):
        results = []
        for call in calls:
            try:
                results.append(ViewResult(call=call, value=await self.view(call)))
            except Exception as e:
                results.append(ViewResult(call=call, error=e))
        return results

    async def get_resource(self, address, resource_type):
        value = self.resources.get(resource_type)
        if value is None:
            raise ResourceNotFound(f"{resource_type} not found", status_code=404)
        if isinstance(value, Exception):
            raise value
        return value

    async def resource_exists(self, address, resource_type):
        try:
            await self.get_resource(address, resource_type)
        except ResourceNotFound:
            return False
        return True

    async def wait_for_transaction(self, transaction_hash):
        self.waited.append(transaction_hash)
        if self.confirmation_error is not None:
            raise self.confirmation_error
        return {"hash": transaction_hash, "type": "user_transaction", "success": True}

    def close(self):
        self.closed = True


def vault_views(
    min_deposit=1 * TOKENS,
    balance=100 * TOKENS,
    paused=False,
    registered=True,
    **overrides
):
    """View results of a healthy vault, as a node would encode them."""
    views = {
        "get_user_shares": ["0"],
        "get_total_assets": [str(500 * TOKENS)],
        "get_total_shares": [str(500 * TOKENS)],
        "get_share_price": ["1000000"],
        "get_available_assets": [str(400 * TOKENS)],
        "get_min_deposit": [str(min_deposit)],
        "is_paused": [paused],
        "get_balance": [str(balance)],
        "get_user_profits": ["0"],
        "get_user_total_deposited": ["0"],
        "is_registered": [registered],
    }
    views.update(overrides)
    return views


@pytest.fixture(autouse=True)
def _reset_module_state():
    """Clear cached network definitions and suppressed log keys between tests."""
    NetworkConfig._networks_cache = None
    reset_rate_limits()
    yield
    NetworkConfig._networks_cache = None
    reset_rate_limits()


@pytest.fixture
def protocol():
    return ProtocolConfig(
        vault_address=VAULT,
        mock_token_type=MOCK_TOKEN,
        orderbook_address=VAULT,
        market_address=VAULT,
        quote_coin_type=QUOTE_COIN,
    )


@pytest.fixture
def user_resources(protocol):
    """Resources of an account that already has a vault position."""
    return {protocol.user_resource_type: {"type": protocol.user_resource_type, "data": {}}}


@pytest.fixture
def ledger(user_resources):
    return FakeLedger(views=vault_views(), resources=user_resources)


@pytest.fixture
def stub_wallet():
    return StubWalletProvider(provider_id="stub", address=ACCOUNT_A)


@pytest.fixture
def sessions(stub_wallet):
    return WalletSessionManager([stub_wallet])
