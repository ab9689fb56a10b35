"""
Aggregated reads of vault and order-book state.
"""
import asyncio
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from ._rate_limited_log import rate_limited_log
from .amounts import PRICE_DECIMALS, SHARE_PRICE_DECIMALS
from .config import ProtocolConfig
from .exceptions import RemoteReadError, ResourceNotFound
from .ledger.gateway import LedgerGateway
from .models import DepthLevel, OrderbookDepth, ViewCall, VaultSnapshot

logger = logging.getLogger(__name__)

# Value substituted for a field whose read failed
SNAPSHOT_DEFAULTS: Dict[str, Any] = {
    "user_shares": 0,
    "total_assets": 0,
    "total_supply": 0,
    "share_price": 10 ** SHARE_PRICE_DECIMALS,
    "available_assets": 0,
    "min_deposit": 0,
    "is_paused": False,
    "token_balance": 0,
    "base_asset_balance": 0,
    "user_profits": 0,
    "user_total_deposited": 0,
}


def parse_u64(value: Any) -> int:
    """
    Parse an integer return value; nodes encode u64/u128 as strings.

    Raises:
        ValueError: If the value is not an integer
    """
    if isinstance(value, bool):
        raise ValueError(f"Expected an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValueError(f"Expected an integer, got {value!r}")


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise ValueError(f"Expected a boolean, got {value!r}")


def first_value(result: List[Any]) -> Any:
    if not result:
        raise ValueError("View returned no values")
    return result[0]


class VaultReader:
    """
    Builds vault snapshots and order-book depth from view calls.

    Each snapshot is rebuilt from scratch. A failed sub-read leaves its
    documented default in place instead of failing the snapshot.
    """

    def __init__(self, gateway: LedgerGateway, protocol: ProtocolConfig,
                 logger: Optional[logging.Logger] = None):
        self.gateway = gateway
        self.protocol = protocol
        self.logger = logger or logging.getLogger(__name__)

    def snapshot_calls(self, account: str) -> List[Tuple[str, ViewCall]]:
        """View calls feeding a snapshot, keyed by snapshot field"""
        vault = self.protocol.vault_address
        fn = self.protocol.vault_function
        return [
            ("user_shares", ViewCall(function=fn("get_user_shares"), arguments=[vault, account])),
            ("total_assets", ViewCall(function=fn("get_total_assets"), arguments=[vault])),
            ("total_supply", ViewCall(function=fn("get_total_shares"), arguments=[vault])),
            ("share_price", ViewCall(function=fn("get_share_price"), arguments=[vault])),
            ("available_assets", ViewCall(function=fn("get_available_assets"), arguments=[vault])),
            ("min_deposit", ViewCall(function=fn("get_min_deposit"), arguments=[vault])),
            ("is_paused", ViewCall(function=fn("is_paused"), arguments=[vault])),
            ("token_balance", ViewCall(function=self.protocol.token_function("get_balance"), arguments=[account])),
            ("user_profits", ViewCall(function=fn("get_user_profits"), arguments=[vault, account])),
            ("user_total_deposited", ViewCall(function=fn("get_user_total_deposited"), arguments=[vault, account])),
        ]

    def _degraded(self, field_name: str, reason: Any) -> None:
        rate_limited_log(
            f"Snapshot field {field_name} unavailable, using default {SNAPSHOT_DEFAULTS[field_name]!r}: {reason}",
            level="warning",
            key=f"snapshot:{field_name}",
            logger_instance=self.logger
        )

    async def _read_base_balance(self, account: str) -> int:
        try:
            resource = await self.gateway.get_resource(account, self.protocol.base_coin_store_type)
        except ResourceNotFound:
            # No coin store registered: the balance is genuinely zero
            return 0
        return parse_u64(resource["data"]["coin"]["value"])

    async def fetch_snapshot(self, account: str) -> VaultSnapshot:
        """
        Read the full vault state for an account.

        Args:
            account: Account address

        Returns:
            Snapshot with defaults substituted for failed reads
        """
        keyed_calls = self.snapshot_calls(account)
        view_results, base_balance = await asyncio.gather(
            self.gateway.batch_view([call for _, call in keyed_calls]),
            self._read_base_balance(account),
            return_exceptions=True
        )
        if isinstance(view_results, BaseException):
            raise view_results

        values: Dict[str, Any] = dict(SNAPSHOT_DEFAULTS)
        defaulted = set()

        for (field_name, _), result in zip(keyed_calls, view_results):
            if not result.ok:
                defaulted.add(field_name)
                self._degraded(field_name, result.error)
                continue
            try:
                raw = first_value(result.value)
                values[field_name] = parse_bool(raw) if field_name == "is_paused" else parse_u64(raw)
            except ValueError as e:
                defaulted.add(field_name)
                self._degraded(field_name, e)

        if isinstance(base_balance, Exception):
            defaulted.add("base_asset_balance")
            self._degraded("base_asset_balance", base_balance)
        elif isinstance(base_balance, BaseException):
            raise base_balance
        else:
            values["base_asset_balance"] = base_balance

        if defaulted:
            self.logger.debug(f"Snapshot for {account[:10]}... built with defaults for {sorted(defaulted)}")
        return VaultSnapshot(account=account, defaulted_fields=frozenset(defaulted), **values)

    async def fetch_order_book_depth(self, levels: int = 10) -> OrderbookDepth:
        """
        Read the top ``levels`` price levels of the configured market.

        The program returns ``[bid_prices, bid_sizes, ask_prices, ask_sizes]``
        with prices in ticks.

        Raises:
            RemoteReadError: If the view fails or returns an unexpected shape
        """
        call = ViewCall(
            function=self.protocol.orderbook_function("get_order_book_depth"),
            type_arguments=self.protocol.market_type_arguments,
            arguments=[self.protocol.market_address, str(levels)],
        )
        result = await self.gateway.view(call)
        if len(result) < 4:
            raise RemoteReadError(f"Unexpected order book depth shape: {len(result)} values")

        bid_prices, bid_sizes, ask_prices, ask_sizes = (list(part or []) for part in result[:4])
        try:
            return OrderbookDepth(
                bids=self._levels(bid_prices, bid_sizes),
                asks=self._levels(ask_prices, ask_sizes),
            )
        except ValueError as e:
            raise RemoteReadError(f"Invalid order book depth values: {e}")

    @staticmethod
    def _levels(prices: List[Any], sizes: List[Any]) -> List[DepthLevel]:
        levels = []
        for index, price in enumerate(prices):
            size = parse_u64(sizes[index]) if index < len(sizes) else 0
            levels.append(DepthLevel(price=Decimal(parse_u64(price)).scaleb(-PRICE_DECIMALS), size=size))
        return levels
