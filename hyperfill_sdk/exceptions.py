"""
Exceptions for the Hyperfill SDK.

Every error carries a short ``code`` (the class name by default) which is what
the orchestrator reports in ``{success: False, error: code}`` result records.
"""
from typing import Any, List, Optional


class HyperfillError(Exception):
    """Base exception for all Hyperfill SDK errors."""

    def __init__(self, message: str = "", code: Optional[str] = None):
        self.code = code or type(self).__name__
        self.message = message or self.code
        super().__init__(self.message)


class NoCompatibleWallet(HyperfillError):
    """Raised when no usable wallet provider or wallet could be found."""
    pass


class WalletConnectionError(HyperfillError):
    """Raised when a wallet handshake fails."""
    pass


class SessionNotConnected(HyperfillError):
    """Raised when an operation needs a connected wallet and there is none."""

    def __init__(self, message: str = "Wallet not connected", code: Optional[str] = None):
        super().__init__(message, code)


class InvalidAmount(HyperfillError):
    """Raised when a human-entered amount, price or size cannot be used."""
    pass


class RemoteReadError(HyperfillError):
    """Raised when a read against the ledger node fails."""

    def __init__(self, message: str = "", status_code: Optional[int] = None, code: Optional[str] = None):
        self.status_code = status_code
        super().__init__(message, code)


class ResourceNotFound(RemoteReadError):
    """Raised when an account resource does not exist."""
    pass


class SubmissionFailed(HyperfillError):
    """Raised when every submission strategy failed."""

    def __init__(self, message: str = "", attempts: Optional[List[Any]] = None, code: Optional[str] = None):
        self.attempts = attempts or []
        super().__init__(message, code)


class MalformedResponse(SubmissionFailed):
    """Raised when a provider response carries no transaction hash."""
    pass


class ConfirmationError(HyperfillError):
    """Base class for finality-wait failures."""

    def __init__(self, message: str = "", transaction_hash: Optional[str] = None, code: Optional[str] = None):
        self.transaction_hash = transaction_hash
        super().__init__(message, code)


class ConfirmationTimeout(ConfirmationError):
    """Raised when a transaction is not committed within the confirm timeout."""
    pass


class TransactionRejected(ConfirmationError):
    """Raised when a committed transaction reports failure."""

    def __init__(self, message: str = "", transaction_hash: Optional[str] = None,
                 vm_status: Optional[str] = None, code: Optional[str] = None):
        self.vm_status = vm_status
        super().__init__(message, transaction_hash, code)


class PreflightError(HyperfillError):
    """Base class for invariant violations found before submission."""
    pass


class OperationPaused(PreflightError):
    """Raised when the target program is paused."""

    def __init__(self, message: str = "Vault is paused", code: Optional[str] = None):
        super().__init__(message, code)


class BelowMinimum(PreflightError):
    """Raised when the requested amount is below the program minimum."""

    def __init__(self, message: str = "", minimum: Optional[str] = None, code: Optional[str] = None):
        self.minimum = minimum
        super().__init__(message or f"Minimum deposit is {minimum} tokens", code)


class InsufficientBalance(PreflightError):
    """Raised when the account balance cannot cover the requested amount."""

    def __init__(self, message: str = "You don't have enough tokens", code: Optional[str] = None):
        super().__init__(message, code)


class SetupStepFailed(HyperfillError):
    """A one-time setup transaction failed. Logged, never raised to callers."""

    def __init__(self, message: str = "", step: Optional[str] = None, code: Optional[str] = None):
        self.step = step
        super().__init__(message, code)
