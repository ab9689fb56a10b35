"""
Business flows: vault deposit and withdrawal, faucet mint, limit orders.

Every flow returns a result record and never raises. Within a flow the steps
are strictly sequential: setup, preflight, submit, confirm, refresh.
"""
import asyncio
import logging
from typing import Optional, Set, Union

from .amounts import PRICE_DECIMALS, TOKEN_DECIMALS, from_on_chain, to_on_chain, truncate_to_units
from .config import ProtocolConfig
from .exceptions import HyperfillError, InvalidAmount, SetupStepFailed
from .ledger.gateway import LedgerGateway
from .models import (
    DepositResult, FaucetResult, OperationResult, OrderIntent, OrderRestriction, OrderResult,
    OrderSide, OrderbookDepth, TransactionIntent, VaultSnapshot, ViewCall, WalletSession,
    WithdrawResult
)
from .preflight import PreflightValidator
from .submitter import TransactionSubmitter
from .vault import VaultReader, first_value, parse_bool
from .wallet.session import WalletSessionManager

logger = logging.getLogger(__name__)

DEFAULT_FAUCET_AMOUNT = "1000"


def build_order_intent(
    side: Union[OrderSide, str],
    price: Union[str, int],
    size: Union[str, int],
    restriction: Union[OrderRestriction, str] = OrderRestriction.NONE
) -> OrderIntent:
    """
    Scale a human order into ticks and units.

    Price is rounded half away from zero to 2-decimal ticks; size is truncated
    to whole units.

    Raises:
        InvalidAmount: If price or size is not a finite positive number, or
            scales to zero
        ValueError: If side or restriction is unknown
    """
    side = OrderSide(side)
    restriction = OrderRestriction(restriction or OrderRestriction.NONE)

    try:
        price_ticks = to_on_chain(price, PRICE_DECIMALS)
    except InvalidAmount as e:
        raise InvalidAmount(f"Invalid price: {e.message}")

    size_units = truncate_to_units(size)
    if size_units <= 0:
        raise InvalidAmount(f"Invalid size: {size!r} is below one unit")

    return OrderIntent(side=side, price_ticks=price_ticks, size_units=size_units, restriction=restriction)


class OperationOrchestrator:
    """
    Composes setup steps, preflight checks and submissions into flows.

    The latest vault snapshot is kept here and refreshed after every
    successful state change.
    """

    def __init__(
        self,
        session_manager: WalletSessionManager,
        gateway: LedgerGateway,
        submitter: TransactionSubmitter,
        protocol: ProtocolConfig,
        preflight: Optional[PreflightValidator] = None,
        reader: Optional[VaultReader] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.session_manager = session_manager
        self.gateway = gateway
        self.submitter = submitter
        self.protocol = protocol
        self.preflight = preflight or PreflightValidator(gateway, protocol)
        self.reader = reader or VaultReader(gateway, protocol)
        self.logger = logger or logging.getLogger(__name__)

        self._snapshot: Optional[VaultSnapshot] = None
        self._refresh_tasks: Set[asyncio.Task] = set()
        self.session_manager.subscribe(self._on_session_change)

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> Optional[VaultSnapshot]:
        return self._snapshot

    async def refresh_snapshot(self) -> Optional[VaultSnapshot]:
        """
        Rebuild the vault snapshot for the active account.

        Returns:
            The new snapshot, or None when no wallet is connected
        """
        account = self.session_manager.get_active_account()
        if account is None:
            self._snapshot = None
            return None

        snapshot = await self.reader.fetch_snapshot(account)
        # The account may have changed while the reads were in flight
        if self.session_manager.get_active_account() == account:
            self._snapshot = snapshot
        return snapshot

    def schedule_refresh(self) -> Optional[asyncio.Task]:
        """Refresh the snapshot in the background."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return None
        task = loop.create_task(self._refresh_quietly())
        self._refresh_tasks.add(task)
        task.add_done_callback(self._refresh_tasks.discard)
        return task

    async def _refresh_quietly(self) -> None:
        try:
            await self.refresh_snapshot()
        except Exception:
            self.logger.exception("Error refreshing vault stats")

    async def wait_for_refreshes(self) -> None:
        """Wait for every scheduled background refresh to finish."""
        while self._refresh_tasks:
            await asyncio.gather(*list(self._refresh_tasks), return_exceptions=True)

    def _on_session_change(self, session: Optional[WalletSession]) -> None:
        if session is None:
            self._snapshot = None
            return
        if self._snapshot is None or self._snapshot.account != session.address:
            self._snapshot = None
            self.schedule_refresh()

    # ------------------------------------------------------------------
    # Idempotent setup steps
    # ------------------------------------------------------------------

    async def ensure_user_initialized(self, account: str) -> bool:
        """
        Create the per-user vault resource if it does not exist yet.

        Returns:
            True if an initialization transaction was confirmed, False if the
            resource already existed or setup failed (failures are logged)
        """
        try:
            if await self.gateway.resource_exists(account, self.protocol.user_resource_type):
                return False
            intent = TransactionIntent(
                function=self.protocol.vault_function(self.protocol.user_init_function),
                arguments=[self.protocol.vault_address],
            )
            result = await self.submitter.submit(intent)
            self.logger.info(f"Initialized vault position for {account[:10]}... ({result.transaction_hash})")
            return True
        except Exception as e:
            self._setup_failed("initialize_user", e)
            return False

    async def ensure_token_registered(self, account: str) -> bool:
        """
        Register the account for the mock token if it is not registered yet.

        Returns:
            True if a registration transaction was confirmed, False if the
            account was already registered or setup failed (failures are logged)
        """
        try:
            call = ViewCall(function=self.protocol.token_function("is_registered"), arguments=[account])
            registered = parse_bool(first_value(await self.gateway.view(call)))
            if registered:
                return False
            intent = TransactionIntent(function=self.protocol.token_function("register"))
            result = await self.submitter.submit(intent)
            self.logger.info(f"Registered {account[:10]}... for mock token ({result.transaction_hash})")
            return True
        except Exception as e:
            self._setup_failed("register", e)
            return False

    def _setup_failed(self, step: str, error: Exception) -> None:
        failure = SetupStepFailed(f"Setup step {step} failed: {error}", step=step)
        self.logger.warning(f"{failure.message}; continuing, the step may already be satisfied")

    # ------------------------------------------------------------------
    # Flows
    # ------------------------------------------------------------------

    def _failure(self, result_cls, flow: str, error: Exception, **extra) -> OperationResult:
        if isinstance(error, HyperfillError):
            self.logger.error(f"Error {flow}: {error.message}")
            return result_cls(success=False, error=error.code, message=error.message, **extra)
        self.logger.exception(f"Unexpected error {flow}")
        return result_cls(success=False, error=type(error).__name__,
                          message=str(error) or "Transaction failed", **extra)

    async def deposit(self, amount: str) -> DepositResult:
        """
        Deposit mock tokens into the vault.

        Args:
            amount: Human-readable token amount, e.g. ``"50"``

        Returns:
            ``DepositResult``; ``shares`` echoes the deposited amount
        """
        try:
            units = to_on_chain(amount, TOKEN_DECIMALS)
            account = self.session_manager.require_active().address

            await self.ensure_user_initialized(account)
            await self.ensure_token_registered(account)

            await self.preflight.check_deposit(units, account)

            intent = TransactionIntent(
                function=self.protocol.vault_function("deposit_liquidity"),
                arguments=[self.protocol.vault_address, str(units)],
            )
            result = await self.submitter.submit(intent)
            self.schedule_refresh()
            return DepositResult(success=True, transaction_hash=result.transaction_hash, shares=amount)
        except Exception as e:
            return self._failure(DepositResult, "depositing", e)

    async def withdraw(self) -> WithdrawResult:
        """
        Withdraw the whole position; the program computes the payout.

        Returns:
            ``WithdrawResult``; ``assets`` is the share balance known before
            the withdrawal
        """
        try:
            self.session_manager.require_active()
            previous = self._snapshot
            assets = from_on_chain(previous.user_shares, TOKEN_DECIMALS) if previous else "0"

            intent = TransactionIntent(
                function=self.protocol.vault_function("withdraw_profits"),
                arguments=[self.protocol.vault_address],
            )
            result = await self.submitter.submit(intent)
            self.schedule_refresh()
            return WithdrawResult(success=True, transaction_hash=result.transaction_hash, assets=assets)
        except Exception as e:
            return self._failure(WithdrawResult, "withdrawing", e)

    async def request_faucet_tokens(self, amount: str = DEFAULT_FAUCET_AMOUNT) -> FaucetResult:
        """Mint test tokens to the connected account."""
        try:
            units = to_on_chain(amount, TOKEN_DECIMALS)
            account = self.session_manager.require_active().address
            await self.ensure_token_registered(account)

            intent = TransactionIntent(function=self.protocol.token_function("faucet"), arguments=[str(units)])
            result = await self.submitter.submit(intent)
            self.schedule_refresh()
            return FaucetResult(success=True, transaction_hash=result.transaction_hash, amount=amount)
        except Exception as e:
            return self._failure(FaucetResult, "requesting faucet tokens", e)

    async def place_order(
        self,
        side: Union[OrderSide, str],
        price: Union[str, int],
        size: Union[str, int],
        restriction: Union[OrderRestriction, str] = OrderRestriction.NONE
    ) -> OrderResult:
        """
        Place a limit order on the configured market.

        Args:
            side: ``"bid"`` or ``"ask"``
            price: Human price, scaled to 2-decimal ticks
            size: Human size, truncated to whole units
            restriction: ``none``, ``post_only``, ``ioc`` or ``fok``
        """
        try:
            order = build_order_intent(side, price, size, restriction)
            self.session_manager.require_active()
            intent = TransactionIntent(
                function=self.protocol.orderbook_function("place_limit_order_entry"),
                type_arguments=self.protocol.market_type_arguments,
                arguments=[
                    self.protocol.market_address,
                    order.side.is_ask,
                    str(order.price_ticks),
                    str(order.size_units),
                    str(order.restriction.wire_code),
                ],
            )
            result = await self.submitter.submit(intent)
            return OrderResult(success=True, transaction_hash=result.transaction_hash, order=order)
        except Exception as e:
            return self._failure(OrderResult, "placing order", e)

    async def cancel_order(
        self,
        order_id: Union[str, int],
        side: Union[OrderSide, str],
        price: Union[str, int]
    ) -> OrderResult:
        """Cancel a resting order identified by id, side and price."""
        try:
            side = OrderSide(side)
            try:
                price_ticks = to_on_chain(price, PRICE_DECIMALS)
            except InvalidAmount as e:
                raise InvalidAmount(f"Invalid price: {e.message}")
            self.session_manager.require_active()
            intent = TransactionIntent(
                function=self.protocol.orderbook_function("cancel_order_entry"),
                type_arguments=self.protocol.market_type_arguments,
                arguments=[self.protocol.market_address, str(order_id), side.is_ask, str(price_ticks)],
            )
            result = await self.submitter.submit(intent)
            return OrderResult(success=True, transaction_hash=result.transaction_hash)
        except Exception as e:
            return self._failure(OrderResult, "cancelling order", e)

    async def fetch_order_book_depth(self, levels: int = 10) -> OrderbookDepth:
        return await self.reader.fetch_order_book_depth(levels)
