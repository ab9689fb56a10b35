"""
Invariant checks run before a state-changing submission.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .amounts import TOKEN_DECIMALS, from_on_chain
from .config import ProtocolConfig
from .exceptions import BelowMinimum, InsufficientBalance, OperationPaused, RemoteReadError
from .ledger.gateway import LedgerGateway
from .models import ViewCall
from .vault import first_value, parse_bool, parse_u64

logger = logging.getLogger(__name__)


@dataclass
class PreflightReport:
    """Checks that passed, and those that ran on a permissive default"""
    passed: List[str] = field(default_factory=list)
    degraded: List[str] = field(default_factory=list)


class PreflightValidator:
    """
    Validates a deposit against on-chain state.

    Checks run in order and stop at the first failure:

    1. vault paused -> ``OperationPaused``
    2. amount below the minimum deposit -> ``BelowMinimum``
    3. amount above the account's token balance -> ``InsufficientBalance``

    A failed read does not block the deposit: the vault is assumed not
    paused, the minimum is taken as zero, and the balance check is skipped.
    The program still enforces its own rules when the transaction executes.
    """

    def __init__(self, gateway: LedgerGateway, protocol: ProtocolConfig,
                 logger: Optional[logging.Logger] = None):
        self.gateway = gateway
        self.protocol = protocol
        self.logger = logger or logging.getLogger(__name__)

    async def _read(self, call: ViewCall, parse):
        return parse(first_value(await self.gateway.view(call)))

    async def read_is_paused(self) -> bool:
        call = ViewCall(function=self.protocol.vault_function("is_paused"),
                        arguments=[self.protocol.vault_address])
        return await self._read(call, parse_bool)

    async def read_min_deposit(self) -> int:
        call = ViewCall(function=self.protocol.vault_function("get_min_deposit"),
                        arguments=[self.protocol.vault_address])
        return await self._read(call, parse_u64)

    async def read_token_balance(self, account: str) -> int:
        call = ViewCall(function=self.protocol.token_function("get_balance"), arguments=[account])
        return await self._read(call, parse_u64)

    async def check_deposit(self, amount: int, account: str) -> PreflightReport:
        """
        Validate a deposit of ``amount`` on-chain units from ``account``.

        Returns:
            Report of passed and degraded checks

        Raises:
            OperationPaused: If the vault is paused
            BelowMinimum: If the amount is below the vault minimum
            InsufficientBalance: If the account holds less than the amount
        """
        report = PreflightReport()

        try:
            paused = await self.read_is_paused()
        except (RemoteReadError, ValueError) as e:
            self.logger.warning(f"Could not read paused flag, assuming not paused: {e}")
            report.degraded.append("paused")
            paused = False
        if paused:
            raise OperationPaused()
        report.passed.append("paused")

        try:
            minimum = await self.read_min_deposit()
        except (RemoteReadError, ValueError) as e:
            self.logger.warning(f"Could not read minimum deposit, assuming none: {e}")
            report.degraded.append("minimum")
            minimum = 0
        if amount < minimum:
            raise BelowMinimum(minimum=from_on_chain(minimum, TOKEN_DECIMALS))
        report.passed.append("minimum")

        try:
            balance = await self.read_token_balance(account)
        except (RemoteReadError, ValueError) as e:
            self.logger.warning(f"Could not read token balance, skipping balance check: {e}")
            report.degraded.append("balance")
            return report
        if amount > balance:
            raise InsufficientBalance(
                f"Insufficient balance: requested {from_on_chain(amount, TOKEN_DECIMALS)}, "
                f"available {from_on_chain(balance, TOKEN_DECIMALS)}"
            )
        report.passed.append("balance")
        return report
