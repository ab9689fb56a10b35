"""
Data models for the Hyperfill SDK.
"""
import re
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator

from .amounts import (
    BASE_ASSET_DECIMALS, SHARE_PRICE_DECIMALS, TOKEN_DECIMALS, format_amount, from_on_chain
)

_FUNCTION_ID_RE = re.compile(r"^0x[0-9a-fA-F]+::[A-Za-z_][A-Za-z0-9_]*::[A-Za-z_][A-Za-z0-9_]*$")


class SessionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class WalletSession(BaseModel):
    """An established connection to one wallet provider"""
    provider_id: str
    address: str
    public_key: Optional[str] = None
    status: SessionStatus = SessionStatus.CONNECTED
    wallet_name: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class TransactionIntent(BaseModel):
    """Provider-agnostic description of an entry-function call"""
    function_id: str = Field(..., alias="function")
    type_arguments: Tuple[str, ...] = ()
    arguments: Tuple[Any, ...] = ()

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("function_id")
    @classmethod
    def _check_function_id(cls, value: str) -> str:
        if not _FUNCTION_ID_RE.match(value):
            raise ValueError(f"function must look like <address>::<module>::<function>, got {value!r}")
        return value

    def to_view_body(self) -> Dict[str, Any]:
        """Body of a ``POST /view`` request."""
        return {
            "function": self.function_id,
            "type_arguments": list(self.type_arguments),
            "arguments": list(self.arguments),
        }


class ViewCall(TransactionIntent):
    """A read-only call; same shape as an entry-function intent"""
    pass


class SubmissionResult(BaseModel):
    """Outcome of a submitted and confirmed transaction"""
    transaction_hash: str
    strategy: str
    confirmation: Optional[Dict[str, Any]] = None


class OrderSide(str, Enum):
    BID = "bid"
    ASK = "ask"

    @property
    def is_ask(self) -> bool:
        """Wire flag used by the order-book program: ``True`` for asks."""
        return self is OrderSide.ASK


class OrderRestriction(str, Enum):
    NONE = "none"
    FOK = "fok"
    IOC = "ioc"
    POST_ONLY = "post_only"

    @property
    def wire_code(self) -> int:
        return _RESTRICTION_CODES[self]


_RESTRICTION_CODES = {
    OrderRestriction.NONE: 0,
    OrderRestriction.FOK: 1,
    OrderRestriction.IOC: 2,
    OrderRestriction.POST_ONLY: 3,
}


class OrderIntent(BaseModel):
    """A limit order after price/size scaling"""
    side: OrderSide
    price_ticks: PositiveInt
    size_units: PositiveInt
    restriction: OrderRestriction = OrderRestriction.NONE

    model_config = ConfigDict(frozen=True)


class VaultSnapshot(BaseModel):
    """
    Aggregated vault state for one account.

    Integer fields hold raw on-chain units. Fields whose read failed carry a
    default value and are listed in ``defaulted_fields``.
    """
    account: Optional[str] = None
    user_shares: int = 0
    total_assets: int = 0
    total_supply: int = 0
    share_price: int = 10 ** SHARE_PRICE_DECIMALS
    available_assets: int = 0
    min_deposit: int = 0
    is_paused: bool = False
    token_balance: int = 0
    base_asset_balance: int = 0
    user_profits: int = 0
    user_total_deposited: int = 0
    defaulted_fields: FrozenSet[str] = frozenset()

    model_config = ConfigDict(frozen=True)

    def is_defaulted(self, name: str) -> bool:
        return name in self.defaulted_fields

    @property
    def is_complete(self) -> bool:
        return not self.defaulted_fields

    def display(self, places: int = 4) -> Dict[str, Any]:
        """Human-readable rendering of the snapshot"""
        token = lambda v: format_amount(v, TOKEN_DECIMALS, places)
        return {
            "userShares": token(self.user_shares),
            "totalAssets": token(self.total_assets),
            "totalSupply": token(self.total_supply),
            "sharePrice": format_amount(self.share_price, SHARE_PRICE_DECIMALS, places),
            "availableAssets": token(self.available_assets),
            "minDeposit": from_on_chain(self.min_deposit, TOKEN_DECIMALS),
            "isPaused": self.is_paused,
            "tokenBalance": token(self.token_balance),
            "baseAssetBalance": format_amount(self.base_asset_balance, BASE_ASSET_DECIMALS, places),
            "userProfits": token(self.user_profits),
            "userTotalDeposited": token(self.user_total_deposited),
        }


@dataclass(frozen=True)
class ViewResult:
    """Settle-all outcome of one view call"""
    call: TransactionIntent
    value: Any = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class DepthLevel:
    price: Decimal
    size: int


@dataclass
class OrderbookDepth:
    bids: List[DepthLevel] = field(default_factory=list)
    asks: List[DepthLevel] = field(default_factory=list)


@dataclass
class OperationResult:
    """
    Result record returned by every business flow.

    ``error`` is the error code (e.g. ``"BelowMinimum"``) and ``message`` a
    short human-readable reason.
    """
    success: bool
    transaction_hash: Optional[str] = None
    error: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass
class DepositResult(OperationResult):
    shares: Optional[str] = None


@dataclass
class WithdrawResult(OperationResult):
    assets: Optional[str] = None


@dataclass
class FaucetResult(OperationResult):
    amount: Optional[str] = None


@dataclass
class OrderResult(OperationResult):
    order: Optional[OrderIntent] = None
