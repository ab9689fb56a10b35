"""
Wallet session state machine.

At most one wallet session is connected at any time. Connecting a provider
while another is connected tears the old session down first.
"""
import asyncio
import logging
from typing import Callable, Dict, Iterable, List, Optional

from ..exceptions import NoCompatibleWallet, SessionNotConnected, WalletConnectionError
from ..models import SessionStatus, WalletSession
from .providers import ProviderAccount, WalletProvider

logger = logging.getLogger(__name__)

SessionListener = Callable[[Optional[WalletSession]], None]


class WalletSessionManager:
    """
    Owns the single active wallet session.

    Transitions:
        DISCONNECTED --connect--> CONNECTING --ok--> CONNECTED
        CONNECTING --failure or cancellation--> DISCONNECTED
        DISCONNECTED --restore (account already authorized)--> CONNECTED
        CONNECTED --disconnect / account removed--> DISCONNECTED
        CONNECTED --connect(other)--> CONNECTING (after tearing down the old session)

    Other components only read the session through the accessor methods.
    """

    def __init__(self, providers: Optional[Iterable[WalletProvider]] = None,
                 logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._providers: Dict[str, WalletProvider] = {}
        self._session: Optional[WalletSession] = None
        self._status = SessionStatus.DISCONNECTED
        self._pending_provider: Optional[str] = None
        self._lock = asyncio.Lock()
        self._listeners: List[SessionListener] = []

        for provider in providers or []:
            self.register_provider(provider)

    # ------------------------------------------------------------------
    # Provider registry
    # ------------------------------------------------------------------

    def register_provider(self, provider: WalletProvider) -> None:
        """
        Make a provider available for connection.

        Raises:
            ValueError: If another provider already uses the same id
        """
        if not provider.provider_id:
            raise ValueError("Provider must have a provider_id")
        if provider.provider_id in self._providers:
            raise ValueError(f"Provider {provider.provider_id!r} is already registered")
        self._providers[provider.provider_id] = provider
        provider.on_account_change(
            lambda account, pid=provider.provider_id: self.handle_account_change(pid, account)
        )

    @property
    def providers(self) -> Dict[str, WalletProvider]:
        return dict(self._providers)

    def available_providers(self) -> List[str]:
        return [pid for pid, provider in self._providers.items() if provider.is_available()]

    def _require_provider(self, provider_id: str) -> WalletProvider:
        provider = self._providers.get(provider_id)
        if provider is None:
            available = ", ".join(sorted(self._providers)) or "none"
            raise NoCompatibleWallet(f"Unknown wallet provider {provider_id!r}. Registered: {available}")
        if not provider.is_available():
            raise NoCompatibleWallet(f"Wallet provider {provider_id!r} is not available")
        return provider

    # ------------------------------------------------------------------
    # Pure reads
    # ------------------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        return self._status

    def get_active_session(self) -> Optional[WalletSession]:
        return self._session

    def get_active_account(self) -> Optional[str]:
        return self._session.address if self._session else None

    def get_active_provider(self) -> Optional[WalletProvider]:
        if self._session is None:
            return None
        return self._providers.get(self._session.provider_id)

    def require_active(self) -> WalletSession:
        """
        Return the connected session.

        Raises:
            SessionNotConnected: If no wallet is connected
        """
        if self._session is None or self._status != SessionStatus.CONNECTED:
            raise SessionNotConnected()
        return self._session

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def subscribe(self, listener: SessionListener) -> None:
        """Register a callback invoked with the new session (or None) after each transition."""
        self._listeners.append(listener)

    def _set_session(self, session: Optional[WalletSession]) -> None:
        self._session = session
        self._status = SessionStatus.CONNECTED if session else SessionStatus.DISCONNECTED
        for listener in list(self._listeners):
            try:
                listener(session)
            except Exception:
                self.logger.exception("Session listener failed")

    async def _teardown(self) -> None:
        session = self._session
        if session is None:
            return
        provider = self._providers.get(session.provider_id)
        self._set_session(None)
        if provider is None:
            return
        try:
            await provider.disconnect()
        except Exception as e:
            self.logger.warning(f"Error disconnecting {session.provider_id}: {e}")
        self.logger.info(f"Disconnected {session.provider_id} wallet {session.address[:10]}...")

    async def connect(self, provider_id: str, wallet_name: Optional[str] = None) -> WalletSession:
        """
        Connect a wallet provider, replacing any existing session.

        Args:
            provider_id: Id of a registered provider
            wallet_name: Specific wallet for umbrella providers

        Returns:
            The new connected session

        Raises:
            NoCompatibleWallet: If the provider is unknown, unavailable, or has no wallet
            WalletConnectionError: If the handshake fails
        """
        async with self._lock:
            provider = self._require_provider(provider_id)

            await self._teardown()

            self._status = SessionStatus.CONNECTING
            self._pending_provider = provider_id
            self.logger.debug(f"Connecting {provider_id} wallet")
            try:
                account = await provider.connect(wallet_name)
            except (NoCompatibleWallet, WalletConnectionError):
                self._status = SessionStatus.DISCONNECTED
                raise
            except Exception as e:
                self._status = SessionStatus.DISCONNECTED
                raise WalletConnectionError(f"Failed to connect {provider_id} wallet: {e}")
            except asyncio.CancelledError:
                self._status = SessionStatus.DISCONNECTED
                self.logger.debug(f"Connection to {provider_id} wallet cancelled")
                raise
            finally:
                self._pending_provider = None

            if account is None or not account.address:
                self._status = SessionStatus.DISCONNECTED
                raise WalletConnectionError(f"{provider_id} wallet returned no account")

            session = WalletSession(
                provider_id=provider_id,
                address=account.address,
                public_key=account.public_key,
                status=SessionStatus.CONNECTED,
                wallet_name=getattr(provider, "connected_wallet", None) or wallet_name,
            )
            self._set_session(session)
            self.logger.info(f"Connected {provider_id} wallet {account.address[:10]}...")
            return session

    async def restore(self, provider_id: str) -> Optional[WalletSession]:
        """
        Adopt an account the wallet has already authorized, without a handshake.

        Used at startup to resume a connection the user approved earlier.

        Args:
            provider_id: Id of a registered provider

        Returns:
            The restored session, or None if the wallet exposes no account

        Raises:
            NoCompatibleWallet: If the provider is unknown or unavailable
        """
        async with self._lock:
            provider = self._require_provider(provider_id)
            active = self._session
            if active is not None and active.provider_id == provider_id:
                return active

            try:
                account = await provider.current_account()
            except Exception as e:
                self.logger.warning(f"Could not read current {provider_id} account: {e}")
                return None
            if account is None or not account.address:
                self.logger.debug(f"No authorized {provider_id} account to restore")
                return None

            await self._teardown()
            session = WalletSession(
                provider_id=provider_id,
                address=account.address,
                public_key=account.public_key,
                status=SessionStatus.CONNECTED,
                wallet_name=getattr(provider, "connected_wallet", None),
            )
            self._set_session(session)
            self.logger.info(f"Restored {provider_id} wallet {account.address[:10]}...")
            return session

    async def disconnect(self) -> None:
        """Disconnect the active session, if any. Provider errors are logged."""
        async with self._lock:
            await self._teardown()

    def handle_account_change(self, provider_id: str, account: Optional[ProviderAccount]) -> None:
        """
        Reconcile the session with an account pushed by a provider.

        Idempotent: repeating the same event leaves the session unchanged.
        Events from providers other than the active one, and events arriving
        while a connection is in progress, are ignored.
        """
        if self._status == SessionStatus.CONNECTING:
            self.logger.debug(f"Ignoring account change from {provider_id} while connecting")
            return

        session = self._session
        if session is None or session.provider_id != provider_id:
            self.logger.debug(f"Ignoring account change from inactive provider {provider_id}")
            return

        if account is None:
            self.logger.info(f"{provider_id} wallet removed account {session.address[:10]}...")
            self._set_session(None)
            return

        if account.address == session.address and account.public_key in (None, session.public_key):
            return

        self.logger.info(f"{provider_id} wallet switched account to {account.address[:10]}...")
        self._set_session(session.model_copy(update={
            "address": account.address,
            "public_key": account.public_key,
        }))
