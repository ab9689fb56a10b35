"""
Tests for deposit preflight checks.
"""
import pytest

from hyperfill_sdk.exceptions import (
    BelowMinimum, InsufficientBalance, OperationPaused, RemoteReadError
)
from hyperfill_sdk.preflight import PreflightValidator

from conftest import ACCOUNT_A, TOKENS, FakeLedger, vault_views


def validator(protocol, **views):
    return PreflightValidator(FakeLedger(views=vault_views(**views)), protocol)


class TestCheckDeposit:
    @pytest.mark.asyncio
    async def test_all_checks_pass(self, protocol):
        report = await validator(protocol).check_deposit(50 * TOKENS, ACCOUNT_A)
        assert report.passed == ["paused", "minimum", "balance"]
        assert report.degraded == []

    @pytest.mark.asyncio
    async def test_paused(self, protocol):
        with pytest.raises(OperationPaused) as exc_info:
            await validator(protocol, paused=True).check_deposit(50 * TOKENS, ACCOUNT_A)
        assert exc_info.value.message == "Vault is paused"

    @pytest.mark.asyncio
    async def test_amount_equal_to_minimum_passes(self, protocol):
        report = await validator(protocol, min_deposit=10 * TOKENS).check_deposit(10 * TOKENS, ACCOUNT_A)
        assert "minimum" in report.passed

    @pytest.mark.asyncio
    async def test_one_unit_below_minimum_fails(self, protocol):
        with pytest.raises(BelowMinimum) as exc_info:
            await validator(protocol, min_deposit=10 * TOKENS).check_deposit(10 * TOKENS - 1, ACCOUNT_A)
        assert exc_info.value.minimum == "10"
        assert exc_info.value.message == "Minimum deposit is 10 tokens"

    @pytest.mark.asyncio
    async def test_insufficient_balance(self, protocol):
        with pytest.raises(InsufficientBalance):
            await validator(protocol, balance=5 * TOKENS).check_deposit(6 * TOKENS, ACCOUNT_A)

    @pytest.mark.asyncio
    async def test_paused_checked_before_minimum(self, protocol):
        with pytest.raises(OperationPaused):
            await validator(protocol, paused=True, min_deposit=10 * TOKENS).check_deposit(1, ACCOUNT_A)

    @pytest.mark.asyncio
    async def test_failed_reads_degrade_permissively(self, protocol):
        ledger = FakeLedger(views={
            "is_paused": RemoteReadError("down"),
            "get_min_deposit": RemoteReadError("down"),
            "get_balance": RemoteReadError("down"),
        })

        report = await PreflightValidator(ledger, protocol).check_deposit(1, ACCOUNT_A)

        assert report.degraded == ["paused", "minimum", "balance"]
        assert report.passed == ["paused", "minimum"]

    @pytest.mark.asyncio
    async def test_malformed_read_degrades(self, protocol):
        report = await validator(protocol, get_min_deposit=["lots"]).check_deposit(1, ACCOUNT_A)
        assert report.degraded == ["minimum"]
