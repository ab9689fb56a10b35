"""
Wallet integration for the Hyperfill SDK.

This package unifies heterogeneous wallet SDKs behind ``WalletProvider`` and
keeps the single active session in ``WalletSessionManager``.
"""
from .payloads import PayloadStyle, normalize_payload
from .providers import (
    AdapterWalletProvider, MartianWalletProvider, ProviderAccount, StubWalletProvider,
    WalletProvider, account_from_raw, select_wallet
)
from .session import WalletSessionManager

__all__ = [
    'PayloadStyle',
    'normalize_payload',
    'WalletProvider',
    'AdapterWalletProvider',
    'MartianWalletProvider',
    'StubWalletProvider',
    'ProviderAccount',
    'account_from_raw',
    'select_wallet',
    'WalletSessionManager',
]
