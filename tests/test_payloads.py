"""
Tests for wallet payload normalization.
"""
import pytest
from pydantic import ValidationError

from hyperfill_sdk.models import TransactionIntent, WalletSession
from hyperfill_sdk.wallet.payloads import PayloadStyle, normalize_payload

from conftest import ACCOUNT_A, MOCK_TOKEN, QUOTE_COIN


@pytest.fixture
def intent():
    return TransactionIntent(
        function="0xcafe::orderbook::place_limit_order_entry",
        type_arguments=[MOCK_TOKEN, QUOTE_COIN],
        arguments=["0xcafe", False, "1234", "7", "0"],
    )


@pytest.fixture
def session():
    return WalletSession(provider_id="stub", address=ACCOUNT_A)


def test_entry_function_style(intent, session):
    payload = normalize_payload(intent, session, PayloadStyle.ENTRY_FUNCTION)
    assert payload == {
        "type": "entry_function_payload",
        "function": "0xcafe::orderbook::place_limit_order_entry",
        "type_arguments": [MOCK_TOKEN, QUOTE_COIN],
        "arguments": ["0xcafe", False, "1234", "7", "0"],
    }


def test_bare_style_has_no_type(intent, session):
    payload = normalize_payload(intent, session, PayloadStyle.BARE)
    assert "type" not in payload
    assert payload["function"] == intent.function_id
    assert payload["arguments"] == ["0xcafe", False, "1234", "7", "0"]


def test_sender_data_style(intent, session):
    payload = normalize_payload(intent, session, PayloadStyle.SENDER_DATA)
    assert payload == {
        "sender": ACCOUNT_A,
        "data": {
            "function": "0xcafe::orderbook::place_limit_order_entry",
            "typeArguments": [MOCK_TOKEN, QUOTE_COIN],
            "functionArguments": ["0xcafe", False, "1234", "7", "0"],
        },
    }


def test_sender_data_requires_session(intent):
    with pytest.raises(ValueError):
        normalize_payload(intent, None, PayloadStyle.SENDER_DATA)


def test_translation_is_pure(intent, session):
    """Same inputs give equal payloads, and payloads do not share lists."""
    first = normalize_payload(intent, session, PayloadStyle.ENTRY_FUNCTION)
    second = normalize_payload(intent, session, PayloadStyle.ENTRY_FUNCTION)
    assert first == second
    first["arguments"].append("mutated")
    assert normalize_payload(intent, session, PayloadStyle.ENTRY_FUNCTION) == second


def test_unknown_style(intent, session):
    with pytest.raises(ValueError):
        normalize_payload(intent, session, "carrier_pigeon")


class TestTransactionIntent:
    def test_function_id_validated(self):
        with pytest.raises(ValueError):
            TransactionIntent(function="not a function")

    def test_populate_by_name(self):
        intent = TransactionIntent(function_id="0x1::coin::transfer")
        assert intent.to_view_body() == {"function": "0x1::coin::transfer", "type_arguments": [], "arguments": []}

    def test_intent_is_immutable(self):
        intent = TransactionIntent(function="0x1::coin::transfer")
        assert TransactionIntent.model_config["frozen"] is True
        with pytest.raises(ValidationError):
            intent.function_id = "0x1::coin::register"
