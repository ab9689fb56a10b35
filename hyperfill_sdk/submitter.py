"""
Transaction submission through the active wallet.

Submission follows a fixed two-step strategy list:

1. ``combined`` - the wallet signs and submits in one call.
2. ``split`` - the wallet first generates the transaction, then signs and
   submits it. Only tried when the wallet supports it and step 1 raised.

Each strategy runs at most once. A response without a transaction hash is
never retried, since the transaction may already have been broadcast.
"""
import logging
from typing import Any, List, Optional, Tuple

from .exceptions import MalformedResponse, SubmissionFailed
from .ledger.gateway import LedgerGateway
from .models import SubmissionResult, TransactionIntent, WalletSession
from .wallet.payloads import normalize_payload
from .wallet.providers import WalletProvider
from .wallet.session import WalletSessionManager

logger = logging.getLogger(__name__)

HASH_FIELDS = ("hash", "transactionHash", "transaction_hash")

STRATEGY_COMBINED = "combined"
STRATEGY_SPLIT = "split"


def extract_transaction_hash(response: Any) -> str:
    """
    Pull the transaction hash out of a wallet response.

    Args:
        response: Dict or object carrying one of ``HASH_FIELDS``, or the hash string itself

    Returns:
        The transaction hash

    Raises:
        MalformedResponse: If no non-empty hash can be found
    """
    if isinstance(response, str):
        if response.strip():
            return response.strip()
        raise MalformedResponse("Wallet returned an empty transaction hash")

    for name in HASH_FIELDS:
        if isinstance(response, dict):
            value = response.get(name)
        else:
            value = getattr(response, name, None)
        if isinstance(value, str) and value:
            return value

    raise MalformedResponse(f"Wallet response has no transaction hash: {_describe(response)}")


def _describe(response: Any) -> str:
    if isinstance(response, dict):
        return f"keys={sorted(response)}"
    return type(response).__name__


class TransactionSubmitter:
    """
    Submits transaction intents through the active wallet session and waits
    for the ledger to commit them.
    """

    def __init__(self, session_manager: WalletSessionManager, gateway: LedgerGateway,
                 logger: Optional[logging.Logger] = None):
        self.session_manager = session_manager
        self.gateway = gateway
        self.logger = logger or logging.getLogger(__name__)

    def strategies(self, provider: WalletProvider) -> List[str]:
        """Ordered submission strategies for a provider"""
        if provider.supports_split_submission:
            return [STRATEGY_COMBINED, STRATEGY_SPLIT]
        return [STRATEGY_COMBINED]

    async def _run_strategy(self, strategy: str, provider: WalletProvider,
                            session: WalletSession, payload: dict) -> Any:
        if strategy == STRATEGY_COMBINED:
            return await provider.sign_and_submit(payload)
        transaction = await provider.generate_transaction(session.address, payload)
        return await provider.submit_generated(transaction)

    async def broadcast(self, intent: TransactionIntent) -> Tuple[str, str]:
        """
        Submit an intent without waiting for confirmation.

        Returns:
            Tuple of (transaction hash, strategy that succeeded)

        Raises:
            SessionNotConnected: If no wallet is connected
            SubmissionFailed: If every strategy raised
            MalformedResponse: If the wallet answered without a hash
        """
        session = self.session_manager.require_active()
        provider = self.session_manager.get_active_provider()
        if provider is None:
            raise SubmissionFailed(f"Provider {session.provider_id!r} is no longer registered")

        payload = normalize_payload(intent, session, provider.payload_style)
        self.logger.debug(f"Submitting {intent.function_id} via {provider.provider_id}: {payload}")

        attempts = []
        for strategy in self.strategies(provider):
            try:
                response = await self._run_strategy(strategy, provider, session, payload)
            except Exception as e:
                self.logger.warning(f"{strategy} submission via {provider.provider_id} failed: {e}")
                attempts.append((strategy, e))
                continue
            return extract_transaction_hash(response), strategy

        reasons = "; ".join(f"{name}: {error}" for name, error in attempts)
        raise SubmissionFailed(f"Transaction failed: {reasons}", attempts=attempts)

    async def submit(self, intent: TransactionIntent) -> SubmissionResult:
        """
        Submit an intent and wait until the ledger commits it.

        Args:
            intent: Entry-function call

        Returns:
            Submission result with the committed transaction

        Raises:
            SessionNotConnected: If no wallet is connected
            SubmissionFailed: If every strategy raised
            MalformedResponse: If the wallet answered without a hash
            ConfirmationError: If the transaction failed or was not confirmed in time
        """
        transaction_hash, strategy = await self.broadcast(intent)
        self.logger.debug(f"Waiting for {transaction_hash} ({strategy})")
        confirmation = await self.gateway.wait_for_transaction(transaction_hash)
        self.logger.info(f"Transaction {transaction_hash} confirmed ({intent.function_id})")
        return SubmissionResult(
            transaction_hash=transaction_hash,
            strategy=strategy,
            confirmation=confirmation
        )
