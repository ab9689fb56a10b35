"""
Hyperfill SDK - wallet sessions and transaction orchestration for the
Hyperfill vault and order book.
"""
from .version import __version__
from .amounts import from_on_chain, format_amount, to_on_chain, truncate_to_units
from .client import HyperfillClient
from .config import NetworkConfig, ProtocolConfig
from .exceptions import (
    BelowMinimum, ConfirmationError, ConfirmationTimeout, HyperfillError, InsufficientBalance,
    InvalidAmount, MalformedResponse, NoCompatibleWallet, OperationPaused, PreflightError,
    RemoteReadError, ResourceNotFound, SessionNotConnected, SetupStepFailed, SubmissionFailed,
    TransactionRejected, WalletConnectionError
)
from .ledger import LedgerGateway
from .models import (
    DepositResult, FaucetResult, OrderIntent, OrderRestriction, OrderResult, OrderSide,
    OrderbookDepth, SessionStatus, SubmissionResult, TransactionIntent, VaultSnapshot, ViewCall,
    ViewResult, WalletSession, WithdrawResult
)
from .orchestrator import OperationOrchestrator, build_order_intent
from .preflight import PreflightValidator
from .submitter import TransactionSubmitter
from .vault import VaultReader
from .wallet import (
    AdapterWalletProvider, MartianWalletProvider, StubWalletProvider, WalletProvider,
    WalletSessionManager
)

__all__ = [
    "__version__",
    "HyperfillClient",
    "NetworkConfig",
    "ProtocolConfig",
    "LedgerGateway",
    "WalletSessionManager",
    "WalletProvider",
    "AdapterWalletProvider",
    "MartianWalletProvider",
    "StubWalletProvider",
    "TransactionSubmitter",
    "PreflightValidator",
    "VaultReader",
    "OperationOrchestrator",
    "build_order_intent",
    "to_on_chain",
    "from_on_chain",
    "format_amount",
    "truncate_to_units",
    "TransactionIntent",
    "ViewCall",
    "ViewResult",
    "SubmissionResult",
    "WalletSession",
    "SessionStatus",
    "VaultSnapshot",
    "OrderIntent",
    "OrderSide",
    "OrderRestriction",
    "OrderbookDepth",
    "DepositResult",
    "WithdrawResult",
    "FaucetResult",
    "OrderResult",
    "HyperfillError",
    "NoCompatibleWallet",
    "WalletConnectionError",
    "SessionNotConnected",
    "InvalidAmount",
    "RemoteReadError",
    "ResourceNotFound",
    "SubmissionFailed",
    "MalformedResponse",
    "ConfirmationError",
    "ConfirmationTimeout",
    "TransactionRejected",
    "PreflightError",
    "OperationPaused",
    "BelowMinimum",
    "InsufficientBalance",
    "SetupStepFailed",
]
