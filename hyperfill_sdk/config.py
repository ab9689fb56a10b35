"""
Network and protocol configuration for the Hyperfill SDK.

Networks are described in the packaged ``networks.json``. Values can be
overridden per call or through environment variables.
"""
import importlib.resources
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_NETWORK = "aptos-testnet"
DEFAULT_WALLET_NAME = "Petra"
DEFAULT_CONFIRM_TIMEOUT = 30.0
EXPLORER_BASE_URL = "https://explorer.aptoslabs.com"


class NetworkConfig:
    """Lookup helpers over the packaged network definitions."""

    _networks_cache: Optional[Dict[str, Dict[str, Any]]] = None

    @classmethod
    def load_networks(cls) -> Dict[str, Dict[str, Any]]:
        """
        Load network definitions, caching them after the first read.

        Returns:
            Mapping of network name to its configuration
        """
        if cls._networks_cache is None:
            resource = importlib.resources.files("hyperfill_sdk").joinpath("networks.json")
            with resource.open("r", encoding="utf-8") as f:
                cls._networks_cache = json.load(f)
            logger.debug(f"Loaded {len(cls._networks_cache)} network definitions")
        return cls._networks_cache

    @classmethod
    def default_network(cls) -> str:
        """Name of the network used when none is given."""
        return os.environ.get("HYPERFILL_NETWORK", DEFAULT_NETWORK)

    @classmethod
    def get_network(cls, network: Optional[str] = None) -> Dict[str, Any]:
        """
        Get the configuration of a single network.

        Raises:
            ValueError: If the network is unknown
        """
        network = network or cls.default_network()
        networks = cls.load_networks()
        if network not in networks:
            available = ", ".join(sorted(networks))
            raise ValueError(f"Unknown network: {network}. Available networks: {available}")
        return networks[network]

    @staticmethod
    def _env_prefix(network: str) -> str:
        return network.upper().replace("-", "_")

    @classmethod
    def get_node_url(cls, network: Optional[str] = None, override: Optional[str] = None) -> str:
        """
        Resolve the full node URL for a network.

        Priority: explicit override, ``<NETWORK>_NODE_URL`` env var, config file.
        """
        if override:
            return override
        network = network or cls.default_network()
        env_value = os.environ.get(f"{cls._env_prefix(network)}_NODE_URL")
        if env_value:
            return env_value
        return cls.get_network(network)["nodeUrl"]

    @classmethod
    def get_chain_id(cls, network: Optional[str] = None) -> int:
        return int(cls.get_network(network)["chainId"])

    @classmethod
    def _require(cls, network: Optional[str], key: str) -> str:
        value = cls.get_network(network).get(key)
        if not value:
            raise ValueError(f"Network {network or cls.default_network()} has no {key} configured")
        return value

    @classmethod
    def get_vault_address(cls, network: Optional[str] = None) -> str:
        return cls._require(network, "vaultAddress")

    @classmethod
    def get_orderbook_address(cls, network: Optional[str] = None) -> str:
        return cls._require(network, "orderbookAddress")

    @classmethod
    def get_explorer_tx_url(cls, tx_hash: str, network: Optional[str] = None) -> str:
        """Block explorer URL for a transaction hash."""
        explorer_network = cls.get_network(network).get("explorerNetwork", "testnet")
        return f"{EXPLORER_BASE_URL}/txn/{tx_hash}?network={explorer_network}"

    @staticmethod
    def get_default_wallet_name() -> str:
        return os.environ.get("HYPERFILL_DEFAULT_WALLET", DEFAULT_WALLET_NAME)

    @staticmethod
    def get_confirm_timeout() -> float:
        raw = os.environ.get("HYPERFILL_CONFIRM_TIMEOUT")
        if not raw:
            return DEFAULT_CONFIRM_TIMEOUT
        try:
            return float(raw)
        except ValueError:
            logger.warning(f"Ignoring invalid HYPERFILL_CONFIRM_TIMEOUT={raw!r}")
            return DEFAULT_CONFIRM_TIMEOUT


@dataclass(frozen=True)
class ProtocolConfig:
    """
    Addresses and names of the on-chain programs the SDK drives.

    Attributes:
        vault_address: Account holding the vault module and its state
        vault_module: Vault module name
        mock_token_type: Fully-qualified mock token struct type
        base_coin_type: Native coin type (used for the base asset balance)
        orderbook_address: Account holding the order-book module
        orderbook_module: Order-book module name
        market_address: Market owner passed to order-book entry functions
        quote_coin_type: Quote asset type argument for the market
        user_resource: Struct name of the per-user vault resource
        user_init_function: Entry function that creates the per-user resource
    """
    vault_address: str
    vault_module: str = "hyperfill_vault"
    mock_token_type: str = ""
    base_coin_type: str = "0x1::aptos_coin::AptosCoin"
    orderbook_address: str = ""
    orderbook_module: str = "orderbook"
    market_address: str = ""
    quote_coin_type: str = ""
    user_resource: str = "UserPosition"
    user_init_function: str = "initialize_user"

    @classmethod
    def from_network(cls, network: Optional[str] = None) -> "ProtocolConfig":
        """Build the protocol configuration of a configured network."""
        data = NetworkConfig.get_network(network)
        vault_address = NetworkConfig.get_vault_address(network)
        return cls(
            vault_address=vault_address,
            vault_module=data.get("vaultModule", "hyperfill_vault"),
            mock_token_type=data.get("mockTokenType", ""),
            base_coin_type=data.get("baseCoinType", "0x1::aptos_coin::AptosCoin"),
            orderbook_address=data.get("orderbookAddress", ""),
            orderbook_module=data.get("orderbookModule", "orderbook"),
            market_address=data.get("marketAddress", vault_address),
            quote_coin_type=data.get("quoteCoinType", ""),
            user_resource=data.get("userResource", "UserPosition"),
            user_init_function=data.get("userInitFunction", "initialize_user"),
        )

    def vault_function(self, name: str) -> str:
        return f"{self.vault_address}::{self.vault_module}::{name}"

    @property
    def mock_token_module(self) -> str:
        """``<address>::<module>`` prefix of the mock token type."""
        parts = self.mock_token_type.split("::")
        if len(parts) < 2:
            raise ValueError(f"Invalid mock token type: {self.mock_token_type!r}")
        return "::".join(parts[:2])

    def token_function(self, name: str) -> str:
        return f"{self.mock_token_module}::{name}"

    def orderbook_function(self, name: str) -> str:
        if not self.orderbook_address:
            raise ValueError("No order-book address configured")
        return f"{self.orderbook_address}::{self.orderbook_module}::{name}"

    @property
    def user_resource_type(self) -> str:
        return f"{self.vault_address}::{self.vault_module}::{self.user_resource}"

    @property
    def base_coin_store_type(self) -> str:
        return f"0x1::coin::CoinStore<{self.base_coin_type}>"

    @property
    def market_type_arguments(self) -> List[str]:
        return [self.mock_token_type, self.quote_coin_type]
