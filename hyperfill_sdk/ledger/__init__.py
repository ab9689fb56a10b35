"""
Ledger access for the Hyperfill SDK.

This package wraps the full node REST API: view calls, account resources and
transaction finality waits.
"""
from .gateway import LedgerGateway, validate_node_url

__all__ = ['LedgerGateway', 'validate_node_url']
