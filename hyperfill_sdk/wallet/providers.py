"""
Wallet provider implementations.

Each wallet family exposes a different SDK. A ``WalletProvider`` adapts one of
them to a single contract: connect, report the current account, push account
changes, and submit a payload. Provider SDK objects are injected as backends;
their methods may be plain or coroutine functions.
"""
import hashlib
import inspect
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from ..config import NetworkConfig
from ..exceptions import NoCompatibleWallet, WalletConnectionError
from .payloads import PayloadStyle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderAccount:
    """Account reported by a wallet"""
    address: str
    public_key: Optional[str] = None


AccountListener = Callable[[Optional[ProviderAccount]], None]


async def _resolve(value: Any) -> Any:
    """Await a backend result if the backend is asynchronous."""
    if inspect.isawaitable(value):
        return await value
    return value


def account_from_raw(raw: Any) -> Optional[ProviderAccount]:
    """
    Normalize the many account shapes wallets return.

    Accepts ``None``, an address string, a dict with ``address`` and
    ``publicKey``/``public_key``, or an object with those attributes.
    """
    if raw is None:
        return None
    if isinstance(raw, str):
        return ProviderAccount(address=raw) if raw else None
    if isinstance(raw, dict):
        address = raw.get("address")
        public_key = raw.get("publicKey") or raw.get("public_key")
    else:
        address = getattr(raw, "address", None)
        public_key = getattr(raw, "public_key", None) or getattr(raw, "publicKey", None)
    if not address:
        return None
    return ProviderAccount(address=str(address), public_key=str(public_key) if public_key else None)


def wallet_name(wallet: Any) -> str:
    if isinstance(wallet, str):
        return wallet
    if isinstance(wallet, dict):
        return str(wallet.get("name") or "")
    return str(getattr(wallet, "name", "") or "")


def select_wallet(wallets: Sequence[Any], preferred: Optional[str] = None, strict: bool = False) -> str:
    """
    Pick a wallet among those an umbrella provider enumerates.

    Args:
        wallets: Enumerated wallets (names, dicts or objects with ``name``)
        preferred: Name to look for, matched case-insensitively as a substring
        strict: Fail instead of falling back to the first wallet when the
            preferred name is not found

    Returns:
        Name of the selected wallet

    Raises:
        NoCompatibleWallet: If no wallet is available, or none matches in strict mode
    """
    names = [name for name in (wallet_name(w) for w in wallets or []) if name]
    if not names:
        raise NoCompatibleWallet("No compatible wallet found")

    if preferred:
        needle = preferred.lower()
        for name in names:
            if needle in name.lower():
                return name
        if strict:
            raise NoCompatibleWallet(
                f"Wallet {preferred!r} not found. Available wallets: {', '.join(names)}"
            )
    return names[0]


class WalletProvider(ABC):
    """
    Abstract base class for wallet providers.

    Subclasses declare the payload shape they accept and whether they offer a
    split generate-then-submit path in addition to combined sign-and-submit.
    """

    provider_id: str = ""
    payload_style: PayloadStyle = PayloadStyle.ENTRY_FUNCTION
    supports_split_submission: bool = False

    def __init__(self):
        self._listeners: List[AccountListener] = []

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check if the wallet can be used in this environment.

        Returns:
            True if the provider's SDK is present
        """
        pass

    @abstractmethod
    async def connect(self, wallet_name: Optional[str] = None) -> ProviderAccount:
        """
        Perform the wallet handshake.

        Args:
            wallet_name: Specific wallet to use, for umbrella providers

        Returns:
            The connected account

        Raises:
            NoCompatibleWallet: If no wallet can be selected
            WalletConnectionError: If the handshake fails
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Tear down the wallet connection."""
        pass

    @abstractmethod
    async def current_account(self) -> Optional[ProviderAccount]:
        """Account the wallet currently exposes, if any."""
        pass

    @abstractmethod
    async def sign_and_submit(self, payload: Dict[str, Any]) -> Any:
        """
        Sign and broadcast a payload in one call.

        Returns:
            The wallet's raw response
        """
        pass

    async def generate_transaction(self, sender: str, payload: Dict[str, Any]) -> Any:
        """Build an unsigned transaction (split submission path)."""
        raise NotImplementedError(f"{self.provider_id} does not support split submission")

    async def submit_generated(self, transaction: Any) -> Any:
        """Sign and broadcast a transaction built by ``generate_transaction``."""
        raise NotImplementedError(f"{self.provider_id} does not support split submission")

    def on_account_change(self, listener: AccountListener) -> None:
        """Register a callback receiving the new account, or None on removal."""
        self._listeners.append(listener)

    def _emit_account_change(self, raw_account: Any) -> None:
        account = account_from_raw(raw_account)
        logger.debug(f"{self.provider_id} reported account change: {account.address if account else None}")
        for listener in list(self._listeners):
            try:
                listener(account)
            except Exception:
                logger.exception(f"Account change listener failed for {self.provider_id}")


class AdapterBackend(Protocol):
    """Wallet-adapter SDK surface used by ``AdapterWalletProvider``"""
    wallets: Sequence[Any]

    def connect(self, wallet_name: str) -> Any: ...
    def disconnect(self) -> Any: ...
    def get_account(self) -> Any: ...
    def sign_and_submit_transaction(self, payload: Dict[str, Any]) -> Any: ...


class LegacyWalletBackend(Protocol):
    """Injected legacy wallet surface used by ``MartianWalletProvider``"""

    def connect(self) -> Any: ...
    def disconnect(self) -> Any: ...
    def account(self) -> Any: ...
    def generate_transaction(self, sender: str, payload: Dict[str, Any]) -> Any: ...
    def sign_and_submit_transaction(self, payload_or_transaction: Any) -> Any: ...
    def on_account_change(self, callback: Callable[[Any], None]) -> Any: ...


class AdapterWalletProvider(WalletProvider):
    """
    Umbrella wallet adapter exposing several concrete wallets.

    The concrete wallet is chosen by name: an explicit name must match,
    otherwise the configured default (``HYPERFILL_DEFAULT_WALLET``, Petra
    when unset) is preferred and the first enumerated
    wallet is the fallback.
    """

    payload_style = PayloadStyle.ENTRY_FUNCTION
    supports_split_submission = False

    def __init__(self, backend: Optional[AdapterBackend], default_wallet_name: Optional[str] = None,
                 provider_id: str = "adapter"):
        super().__init__()
        self.backend = backend
        self.provider_id = provider_id
        self.default_wallet_name = default_wallet_name or NetworkConfig.get_default_wallet_name()
        self.connected_wallet: Optional[str] = None

        register = getattr(backend, "on_account_change", None)
        if callable(register):
            register(self._emit_account_change)

    def is_available(self) -> bool:
        return self.backend is not None

    async def connect(self, wallet_name: Optional[str] = None) -> ProviderAccount:
        if self.backend is None:
            raise NoCompatibleWallet("Wallet adapter is not available")

        if wallet_name:
            selected = select_wallet(self.backend.wallets, wallet_name, strict=True)
        else:
            selected = select_wallet(self.backend.wallets, self.default_wallet_name)

        try:
            await _resolve(self.backend.connect(selected))
            account = account_from_raw(await _resolve(self.backend.get_account()))
        except Exception as e:
            raise WalletConnectionError(f"Failed to connect {selected} wallet: {e}")

        if account is None:
            raise WalletConnectionError(f"{selected} wallet returned no account")
        self.connected_wallet = selected
        return account

    async def disconnect(self) -> None:
        if self.backend is not None:
            await _resolve(self.backend.disconnect())
        self.connected_wallet = None

    async def current_account(self) -> Optional[ProviderAccount]:
        if self.backend is None:
            return None
        return account_from_raw(await _resolve(self.backend.get_account()))

    async def sign_and_submit(self, payload: Dict[str, Any]) -> Any:
        return await _resolve(self.backend.sign_and_submit_transaction(payload))


class MartianWalletProvider(WalletProvider):
    """
    Injected legacy wallet with its own account events.

    It rejects payloads carrying a ``type`` discriminator, and some versions
    only accept transactions built by ``generate_transaction`` first.
    """

    payload_style = PayloadStyle.BARE
    supports_split_submission = True

    def __init__(self, backend: Optional[LegacyWalletBackend], provider_id: str = "martian"):
        super().__init__()
        self.backend = backend
        self.provider_id = provider_id

        register = getattr(backend, "on_account_change", None)
        if callable(register):
            register(self._emit_account_change)

    def is_available(self) -> bool:
        return self.backend is not None

    async def connect(self, wallet_name: Optional[str] = None) -> ProviderAccount:
        if self.backend is None:
            raise NoCompatibleWallet("Martian wallet is not installed")
        try:
            account = account_from_raw(await _resolve(self.backend.connect()))
        except Exception as e:
            raise WalletConnectionError(f"Failed to connect Martian wallet: {e}")
        if account is None:
            raise WalletConnectionError("Martian wallet returned no account")
        return account

    async def disconnect(self) -> None:
        if self.backend is None:
            return
        disconnect = getattr(self.backend, "disconnect", None)
        if callable(disconnect):
            await _resolve(disconnect())

    async def current_account(self) -> Optional[ProviderAccount]:
        if self.backend is None:
            return None
        return account_from_raw(await _resolve(self.backend.account()))

    async def sign_and_submit(self, payload: Dict[str, Any]) -> Any:
        return await _resolve(self.backend.sign_and_submit_transaction(payload))

    async def generate_transaction(self, sender: str, payload: Dict[str, Any]) -> Any:
        return await _resolve(self.backend.generate_transaction(sender, payload))

    async def submit_generated(self, transaction: Any) -> Any:
        return await _resolve(self.backend.sign_and_submit_transaction(transaction))


class StubWalletProvider(WalletProvider):
    """
    In-memory wallet for development and testing.

    It accepts every payload and answers with a deterministic hash. Failures
    can be scripted through ``connect_error``, ``combined_error`` and
    ``split_error``; ``response`` overrides the combined-call response.
    """

    payload_style = PayloadStyle.SENDER_DATA

    def __init__(
        self,
        provider_id: str = "stub",
        address: str = "0x" + "1" * 64,
        public_key: Optional[str] = None,
        supports_split_submission: bool = False
    ):
        super().__init__()
        self.provider_id = provider_id
        self.address = address
        self.public_key = public_key
        self.supports_split_submission = supports_split_submission
        self.connected = False
        self.connect_error: Optional[Exception] = None
        self.combined_error: Optional[Exception] = None
        self.split_error: Optional[Exception] = None
        self.response: Any = None
        self.submitted: List[Dict[str, Any]] = []
        self.calls: List[str] = []

    def is_available(self) -> bool:
        return True

    async def connect(self, wallet_name: Optional[str] = None) -> ProviderAccount:
        self.calls.append("connect")
        if self.connect_error is not None:
            raise WalletConnectionError(str(self.connect_error))
        self.connected = True
        logger.debug(f"Stub wallet {self.provider_id} connected as {self.address[:10]}...")
        return ProviderAccount(address=self.address, public_key=self.public_key)

    async def disconnect(self) -> None:
        self.calls.append("disconnect")
        self.connected = False

    async def current_account(self) -> Optional[ProviderAccount]:
        if not self.connected:
            return None
        return ProviderAccount(address=self.address, public_key=self.public_key)

    def _hash_for(self, payload: Any) -> str:
        digest = hashlib.sha256(
            f"{len(self.submitted)}:{json.dumps(payload, sort_keys=True, default=str)}".encode()
        ).hexdigest()
        return "0x" + digest

    async def sign_and_submit(self, payload: Dict[str, Any]) -> Any:
        self.calls.append("sign_and_submit")
        if self.combined_error is not None:
            raise self.combined_error
        self.submitted.append(payload)
        if self.response is not None:
            return self.response
        return {"hash": self._hash_for(payload)}

    async def generate_transaction(self, sender: str, payload: Dict[str, Any]) -> Any:
        if not self.supports_split_submission:
            return await super().generate_transaction(sender, payload)
        self.calls.append("generate_transaction")
        return {"sender": sender, "payload": payload}

    async def submit_generated(self, transaction: Any) -> Any:
        if not self.supports_split_submission:
            return await super().submit_generated(transaction)
        self.calls.append("submit_generated")
        if self.split_error is not None:
            raise self.split_error
        self.submitted.append(transaction["payload"])
        return self._hash_for(transaction)

    def push_account(self, address: Optional[str]) -> None:
        """Simulate the wallet switching accounts (None removes the account)."""
        if address is None:
            self.connected = False
        else:
            self.address = address
        self._emit_account_change(address)
