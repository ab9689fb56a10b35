"""
HyperfillClient - Main client for the Hyperfill vault and order book.
"""
import logging
from typing import Iterable, Optional, Union

from .config import NetworkConfig, ProtocolConfig
from .ledger.gateway import LedgerGateway
from .models import (
    DepositResult, FaucetResult, OrderbookDepth, OrderRestriction, OrderResult, OrderSide,
    VaultSnapshot, WalletSession, WithdrawResult
)
from .orchestrator import DEFAULT_FAUCET_AMOUNT, OperationOrchestrator
from .preflight import PreflightValidator
from .submitter import TransactionSubmitter
from .vault import VaultReader
from .wallet.providers import WalletProvider
from .wallet.session import WalletSessionManager


class HyperfillClient:
    """
    Client for the Hyperfill protocol.

    This client handles:
    1. Wallet sessions across several wallet providers
    2. Vault deposits, withdrawals and faucet mints
    3. Limit orders on the order book
    4. Aggregated vault state for the connected account

    To use this client, you'll need:
    - A full node REST endpoint (or a configured network name)
    - At least one wallet provider
    """

    def __init__(
        self,
        node_url: str,
        protocol: ProtocolConfig,
        providers: Optional[Iterable[WalletProvider]] = None,
        network: Optional[str] = None,
        timeout: float = 30,
        confirm_timeout: float = 30,
        poll_interval: float = 0.5,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the HyperfillClient

        Args:
            node_url: Full node REST endpoint URL
            protocol: Addresses of the vault, token and order-book programs
            providers: Wallet providers available for connection
            network: Configured network name, used for explorer links
            timeout: Timeout for HTTP requests in seconds
            confirm_timeout: Upper bound for transaction finality waits in seconds
            poll_interval: Delay between transaction status polls in seconds
            logger: Optional logger instance to use for debug/info logging

        Raises:
            ValueError: If the URL doesn't use https (unless it's localhost/127.0.0.1)
        """
        self.logger = logger or logging.getLogger(__name__)
        self.network = network
        self.protocol = protocol

        self.gateway = LedgerGateway(
            node_url,
            timeout=timeout,
            confirm_timeout=confirm_timeout,
            poll_interval=poll_interval,
        )
        self.sessions = WalletSessionManager(providers)
        self.submitter = TransactionSubmitter(self.sessions, self.gateway)
        self.preflight = PreflightValidator(self.gateway, protocol)
        self.reader = VaultReader(self.gateway, protocol)
        self.orchestrator = OperationOrchestrator(
            self.sessions,
            self.gateway,
            self.submitter,
            protocol,
            preflight=self.preflight,
            reader=self.reader,
        )

    @classmethod
    def from_network(
        cls,
        network: Optional[str] = None,
        providers: Optional[Iterable[WalletProvider]] = None,
        node_url: Optional[str] = None,
        **kwargs
    ) -> "HyperfillClient":
        """
        Create a client from a configured network.

        Args:
            network: Network name from ``networks.json`` (defaults to HYPERFILL_NETWORK or aptos-testnet)
            providers: Wallet providers available for connection
            node_url: Optional node URL override
            **kwargs: Passed through to the constructor

        Raises:
            ValueError: If the network is unknown or has no vault deployed
        """
        network = network or NetworkConfig.default_network()
        kwargs.setdefault("confirm_timeout", NetworkConfig.get_confirm_timeout())
        return cls(
            node_url=NetworkConfig.get_node_url(network, override=node_url),
            protocol=ProtocolConfig.from_network(network),
            providers=providers,
            network=network,
            **kwargs
        )

    async def __aenter__(self) -> "HyperfillClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # Session

    async def connect(self, provider_id: str, wallet_name: Optional[str] = None) -> WalletSession:
        return await self.sessions.connect(provider_id, wallet_name)

    async def restore(self, provider_id: str) -> Optional[WalletSession]:
        return await self.sessions.restore(provider_id)

    async def disconnect(self) -> None:
        await self.sessions.disconnect()

    @property
    def account(self) -> Optional[str]:
        return self.sessions.get_active_account()

    @property
    def session(self) -> Optional[WalletSession]:
        return self.sessions.get_active_session()

    # Flows

    async def deposit(self, amount: str) -> DepositResult:
        return await self.orchestrator.deposit(amount)

    async def withdraw(self) -> WithdrawResult:
        return await self.orchestrator.withdraw()

    async def request_faucet_tokens(self, amount: str = DEFAULT_FAUCET_AMOUNT) -> FaucetResult:
        return await self.orchestrator.request_faucet_tokens(amount)

    async def place_order(
        self,
        side: Union[OrderSide, str],
        price: Union[str, int],
        size: Union[str, int],
        restriction: Union[OrderRestriction, str] = OrderRestriction.NONE
    ) -> OrderResult:
        return await self.orchestrator.place_order(side, price, size, restriction)

    async def cancel_order(self, order_id: Union[str, int], side: Union[OrderSide, str],
                           price: Union[str, int]) -> OrderResult:
        return await self.orchestrator.cancel_order(order_id, side, price)

    # Reads

    @property
    def snapshot(self) -> Optional[VaultSnapshot]:
        return self.orchestrator.snapshot

    async def refresh_snapshot(self) -> Optional[VaultSnapshot]:
        return await self.orchestrator.refresh_snapshot()

    async def fetch_order_book_depth(self, levels: int = 10) -> OrderbookDepth:
        return await self.orchestrator.fetch_order_book_depth(levels)

    def tx_url(self, tx_hash: str) -> str:
        """
        Block explorer URL for a transaction.

        Raises:
            ValueError: If the client was not created for a configured network
        """
        if not self.network:
            raise ValueError("Explorer links need a configured network; use HyperfillClient.from_network")
        return NetworkConfig.get_explorer_tx_url(tx_hash, self.network)

    async def close(self) -> None:
        """Wait for background refreshes, disconnect, and release HTTP resources."""
        await self.orchestrator.wait_for_refreshes()
        await self.sessions.disconnect()
        self.gateway.close()
