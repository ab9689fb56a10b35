"""
Fixed-point conversion between human decimal amounts and on-chain integers.

All arithmetic goes through ``decimal.Decimal`` so integer values above 2**53
survive the trip without loss.
"""
from decimal import Decimal, InvalidOperation, ROUND_DOWN, ROUND_HALF_UP, localcontext
from typing import Union

from .exceptions import InvalidAmount

# Asset precisions used by the vault and order-book programs
BASE_ASSET_DECIMALS = 8
TOKEN_DECIMALS = 8
SHARE_PRICE_DECIMALS = 6
PRICE_DECIMALS = 2

# Largest value a u64 argument can carry
MAX_U64 = 2 ** 64 - 1

# Working precision; wide enough for u128 values at any supported scale
_PRECISION = 80

AmountLike = Union[str, int, Decimal]


def parse_decimal(amount: AmountLike) -> Decimal:
    """
    Parse a human-entered amount into a finite Decimal.

    Args:
        amount: Decimal string, int or Decimal

    Returns:
        The parsed value

    Raises:
        InvalidAmount: If the value is empty, not numeric, NaN or infinite
    """
    if isinstance(amount, bool) or amount is None:
        raise InvalidAmount(f"Invalid amount: {amount!r}")
    if isinstance(amount, float):
        # Go through repr so 0.1 stays 0.1 rather than its binary expansion
        amount = repr(amount)
    if isinstance(amount, str):
        text = amount.strip()
        if not text:
            raise InvalidAmount("Amount is empty")
    else:
        text = amount

    try:
        value = Decimal(text)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmount(f"Invalid amount: {amount!r}")

    if not value.is_finite():
        raise InvalidAmount(f"Amount must be a finite number, got {amount!r}")
    return value


def to_on_chain(amount: AmountLike, scale: int, require_positive: bool = True) -> int:
    """
    Encode a human amount as an on-chain integer.

    The value is multiplied by ``10**scale`` and rounded half away from zero.

    Args:
        amount: Human-readable amount, e.g. ``"12.5"``
        scale: Number of fractional digits of the asset
        require_positive: Reject zero and negative results

    Returns:
        Integer amount in the asset's smallest unit

    Raises:
        InvalidAmount: If the amount does not parse, is not positive when
            positivity is required, or does not fit in a u64
    """
    value = parse_decimal(amount)
    if require_positive and value <= 0:
        raise InvalidAmount(f"Amount must be greater than zero, got {amount!r}")

    units = _scale_to_int(value, scale, ROUND_HALF_UP, amount)
    if require_positive and units <= 0:
        raise InvalidAmount(f"Amount {amount!r} is below the smallest unit (scale {scale})")
    return units


def truncate_to_units(amount: AmountLike, scale: int = 0) -> int:
    """
    Encode a human amount by truncating toward zero.

    Used for order sizes: ``"7.9"`` becomes ``7`` and anything below one unit
    becomes ``0``.

    Raises:
        InvalidAmount: If the amount does not parse or does not fit in a u64
    """
    return _scale_to_int(parse_decimal(amount), scale, ROUND_DOWN, amount)


def _scale_to_int(value: Decimal, scale: int, rounding: str, amount: AmountLike) -> int:
    try:
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            units = int(value.scaleb(scale).quantize(Decimal(1), rounding=rounding))
    except InvalidOperation:
        raise InvalidAmount(f"Amount {amount!r} is too large")
    if units > MAX_U64:
        raise InvalidAmount(f"Amount {amount!r} exceeds the largest on-chain value")
    return units


def _to_decimal_units(value: Union[int, str]) -> Decimal:
    if isinstance(value, bool):
        raise InvalidAmount(f"Invalid on-chain amount: {value!r}")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            raise InvalidAmount(f"Invalid on-chain amount: {value!r}")
        if not parsed.is_finite() or parsed != parsed.to_integral_value():
            raise InvalidAmount(f"On-chain amount must be an integer, got {value!r}")
        return parsed
    raise InvalidAmount(f"Invalid on-chain amount type: {type(value).__name__}")


def from_on_chain(value: Union[int, str], scale: int) -> str:
    """
    Decode an on-chain integer into a canonical decimal string.

    Trailing fractional zeros are dropped, so ``from_on_chain(5000000000, 8)``
    is ``"50"`` and ``from_on_chain("150000000", 8)`` is ``"1.5"``.

    Args:
        value: Integer amount, as int or integer string
        scale: Number of fractional digits of the asset

    Returns:
        Decimal string
    """
    units = _to_decimal_units(value)
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        text = format(units.scaleb(-scale), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    return text


def format_amount(value: Union[int, str], scale: int, places: int = 4) -> str:
    """
    Render an on-chain integer with a fixed number of decimal places.

    Extra digits are truncated, never rounded up, so a displayed balance is
    never larger than what is actually held.
    """
    units = _to_decimal_units(value)
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        quantum = Decimal(1).scaleb(-places)
        return format(units.scaleb(-scale).quantize(quantum, rounding=ROUND_DOWN), "f")
