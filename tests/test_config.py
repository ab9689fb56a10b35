"""
Tests for the NetworkConfig and ProtocolConfig helpers.
"""
from unittest.mock import patch

import pytest

from hyperfill_sdk.config import NetworkConfig, ProtocolConfig

# Sample network configuration
MOCK_NETWORKS = {
    "test-network": {
        "chainId": 123,
        "nodeUrl": "https://node.example.com/v1",
        "explorerNetwork": "devnet",
        "vaultAddress": "0xcafe",
        "mockTokenType": "0xcafe::mock_token::MockToken",
        "orderbookAddress": "0xbeef",
        "quoteCoinType": "0xbeef::asset::USDT",
    },
    "bare-network": {
        "chainId": 9,
        "nodeUrl": "https://bare.example.com/v1",
    },
}


@pytest.fixture
def mock_networks():
    NetworkConfig._networks_cache = MOCK_NETWORKS
    yield MOCK_NETWORKS
    NetworkConfig._networks_cache = None


class TestNetworkConfig:
    """Test NetworkConfig class."""

    def test_load_networks_cached(self, mock_networks):
        """Networks are served from the cache after the first load."""
        with patch("importlib.resources.files") as mock_files:
            result = NetworkConfig.load_networks()
            mock_files.assert_not_called()
        assert result == MOCK_NETWORKS

    def test_packaged_networks(self):
        """The packaged file defines the default network."""
        networks = NetworkConfig.load_networks()
        assert "aptos-testnet" in networks
        assert NetworkConfig.get_chain_id("aptos-testnet") == 2
        assert NetworkConfig.get_vault_address("aptos-testnet").startswith("0x")

    def test_get_network_not_found(self, mock_networks):
        with pytest.raises(ValueError) as exc_info:
            NetworkConfig.get_network("missing")
        assert "bare-network, test-network" in str(exc_info.value)

    def test_default_network(self, monkeypatch):
        monkeypatch.delenv("HYPERFILL_NETWORK", raising=False)
        assert NetworkConfig.default_network() == "aptos-testnet"
        monkeypatch.setenv("HYPERFILL_NETWORK", "local")
        assert NetworkConfig.default_network() == "local"

    def test_node_url_priority(self, mock_networks, monkeypatch):
        monkeypatch.delenv("TEST_NETWORK_NODE_URL", raising=False)
        assert NetworkConfig.get_node_url("test-network") == "https://node.example.com/v1"

        monkeypatch.setenv("TEST_NETWORK_NODE_URL", "https://env.example.com/v1")
        assert NetworkConfig.get_node_url("test-network") == "https://env.example.com/v1"
        assert NetworkConfig.get_node_url("test-network", override="https://o.example.com") == "https://o.example.com"

    def test_missing_contract_address(self, mock_networks):
        with pytest.raises(ValueError) as exc_info:
            NetworkConfig.get_vault_address("bare-network")
        assert "vaultAddress" in str(exc_info.value)

    def test_explorer_url(self, mock_networks):
        url = NetworkConfig.get_explorer_tx_url("0xabc", "test-network")
        assert url == "https://explorer.aptoslabs.com/txn/0xabc?network=devnet"

    def test_default_wallet_name(self, monkeypatch):
        monkeypatch.delenv("HYPERFILL_DEFAULT_WALLET", raising=False)
        assert NetworkConfig.get_default_wallet_name() == "Petra"
        monkeypatch.setenv("HYPERFILL_DEFAULT_WALLET", "Pontem")
        assert NetworkConfig.get_default_wallet_name() == "Pontem"

    @pytest.mark.parametrize("raw,expected", [(None, 30.0), ("12.5", 12.5), ("soon", 30.0)])
    def test_confirm_timeout(self, monkeypatch, raw, expected):
        if raw is None:
            monkeypatch.delenv("HYPERFILL_CONFIRM_TIMEOUT", raising=False)
        else:
            monkeypatch.setenv("HYPERFILL_CONFIRM_TIMEOUT", raw)
        assert NetworkConfig.get_confirm_timeout() == expected


class TestProtocolConfig:
    def test_from_network(self, mock_networks):
        protocol = ProtocolConfig.from_network("test-network")

        assert protocol.vault_address == "0xcafe"
        assert protocol.market_address == "0xcafe"
        assert protocol.vault_function("deposit_liquidity") == "0xcafe::hyperfill_vault::deposit_liquidity"
        assert protocol.token_function("faucet") == "0xcafe::mock_token::faucet"
        assert protocol.orderbook_function("cancel_order_entry") == "0xbeef::orderbook::cancel_order_entry"
        assert protocol.user_resource_type == "0xcafe::hyperfill_vault::UserPosition"
        assert protocol.base_coin_store_type == "0x1::coin::CoinStore<0x1::aptos_coin::AptosCoin>"
        assert protocol.market_type_arguments == ["0xcafe::mock_token::MockToken", "0xbeef::asset::USDT"]

    def test_from_network_without_vault(self, mock_networks):
        with pytest.raises(ValueError):
            ProtocolConfig.from_network("bare-network")

    def test_no_orderbook(self):
        protocol = ProtocolConfig(vault_address="0xcafe", mock_token_type="0xcafe::mock_token::MockToken")
        with pytest.raises(ValueError):
            protocol.orderbook_function("place_limit_order_entry")

    def test_invalid_mock_token_type(self):
        with pytest.raises(ValueError):
            ProtocolConfig(vault_address="0xcafe", mock_token_type="MockToken").token_function("faucet")
