"""
Translation of transaction intents into each wallet's payload shape.

Wallet SDKs disagree on field names and on whether a ``type`` or ``sender``
discriminator is expected. The translation is pure: the same intent and
session always produce the same payload.
"""
from enum import Enum
from typing import Any, Dict, Optional

from ..models import TransactionIntent, WalletSession

ENTRY_FUNCTION_PAYLOAD = "entry_function_payload"


class PayloadStyle(str, Enum):
    """Payload shapes accepted by the supported wallet families"""

    # {"type": "entry_function_payload", "function", "type_arguments", "arguments"}
    ENTRY_FUNCTION = "entry_function"
    # {"function", "type_arguments", "arguments"}; the type discriminator breaks some versions
    BARE = "bare"
    # {"sender", "data": {"function", "typeArguments", "functionArguments"}}
    SENDER_DATA = "sender_data"


def normalize_payload(
    intent: TransactionIntent,
    session: Optional[WalletSession],
    style: PayloadStyle
) -> Dict[str, Any]:
    """
    Build the payload a wallet expects for an intent.

    Args:
        intent: Entry-function call to submit
        session: Active wallet session (needed for styles carrying a sender)
        style: Payload shape of the target wallet

    Returns:
        A fresh payload dictionary

    Raises:
        ValueError: If the style is unknown, or needs a sender and there is no session
    """
    type_arguments = list(intent.type_arguments)
    arguments = list(intent.arguments)

    if style == PayloadStyle.ENTRY_FUNCTION:
        return {
            "type": ENTRY_FUNCTION_PAYLOAD,
            "function": intent.function_id,
            "type_arguments": type_arguments,
            "arguments": arguments,
        }
    if style == PayloadStyle.BARE:
        return {
            "function": intent.function_id,
            "type_arguments": type_arguments,
            "arguments": arguments,
        }
    if style == PayloadStyle.SENDER_DATA:
        if session is None:
            raise ValueError("SENDER_DATA payloads need an active session")
        return {
            "sender": session.address,
            "data": {
                "function": intent.function_id,
                "typeArguments": type_arguments,
                "functionArguments": arguments,
            },
        }
    raise ValueError(f"Unknown payload style: {style!r}")
