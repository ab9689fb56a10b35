"""
Read-only access to the ledger full node.

The gateway issues view calls, reads account resources and waits for
transaction finality. It never retries: a failed read is reported to the
caller, which owns any retry policy.
"""
import asyncio
import logging
import urllib.parse
from typing import Any, Dict, List, Optional, Sequence

import requests
from requests.adapters import HTTPAdapter

from ..exceptions import (
    ConfirmationTimeout, RemoteReadError, ResourceNotFound, TransactionRejected
)
from ..models import TransactionIntent, ViewResult

logger = logging.getLogger(__name__)

PENDING_TRANSACTION = "pending_transaction"


def validate_node_url(url: str, name: str = "node_url") -> None:
    """
    Require https unless the URL points at the local machine.

    Raises:
        ValueError: If the URL is not https and not local
    """
    parsed = urllib.parse.urlparse(url)
    netloc_parts = parsed.netloc.split(':')
    host = netloc_parts[0] if netloc_parts else ''
    is_local = host in ('localhost', '127.0.0.1')
    if parsed.scheme != 'https' and not is_local:
        raise ValueError(f"{name} must use https:// for security (got: {parsed.scheme}://)")


class LedgerGateway:
    """
    Async gateway over a full node's REST API.

    Blocking HTTP requests run in worker threads so concurrent flows on the
    same event loop are not held up by a slow read.
    """

    def __init__(
        self,
        node_url: str,
        timeout: float = 30,
        confirm_timeout: float = 30,
        poll_interval: float = 0.5,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the gateway

        Args:
            node_url: Full node REST endpoint (e.g. "https://api.testnet.aptoslabs.com/v1")
            timeout: Timeout for a single HTTP request in seconds
            confirm_timeout: Upper bound for a finality wait in seconds
            poll_interval: Delay between transaction status polls in seconds
            session: Optional pre-configured requests session
            logger: Optional logger instance

        Raises:
            ValueError: If the URL doesn't use https (unless it's localhost/127.0.0.1)
        """
        validate_node_url(node_url)
        self.node_url = node_url.rstrip('/')
        self.timeout = timeout
        self.confirm_timeout = confirm_timeout
        self.poll_interval = poll_interval
        self.logger = logger or logging.getLogger(__name__)

        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(max_retries=0)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self.session = session

    # ------------------------------------------------------------------
    # Blocking helpers, executed off the event loop
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.node_url}{path}"
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            self.logger.debug(f"{method} {path} failed: {e}")
            raise RemoteReadError(f"Request to ledger node failed: {e}")

    @staticmethod
    def _json(response: requests.Response, what: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise RemoteReadError(f"Invalid JSON in {what} response: {e}", status_code=response.status_code)

    @staticmethod
    def _error_detail(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(body, dict):
            return str(body.get("message") or body.get("error_code") or body)
        return str(body)

    def _view_sync(self, call: TransactionIntent) -> List[Any]:
        body = call.to_view_body()
        self.logger.debug(f"View call: {body['function']}")
        response = self._request("POST", "/view", json=body)
        if response.status_code >= 400:
            raise RemoteReadError(
                f"View {call.function_id} failed ({response.status_code}): {self._error_detail(response)}",
                status_code=response.status_code
            )
        result = self._json(response, "view")
        if not isinstance(result, list):
            raise RemoteReadError(f"View {call.function_id} returned {type(result).__name__}, expected a list")
        return result

    @staticmethod
    def resource_path(address: str, resource_type: str) -> str:
        quoted = urllib.parse.quote(resource_type, safe=":")
        return f"/accounts/{address}/resource/{quoted}"

    def _get_resource_sync(self, address: str, resource_type: str) -> Dict[str, Any]:
        response = self._request("GET", self.resource_path(address, resource_type))
        if response.status_code == 404:
            raise ResourceNotFound(
                f"Resource {resource_type} not found for {address}", status_code=404
            )
        if response.status_code >= 400:
            raise RemoteReadError(
                f"Resource read failed ({response.status_code}): {self._error_detail(response)}",
                status_code=response.status_code
            )
        return self._json(response, "resource")

    def _get_transaction_sync(self, transaction_hash: str) -> Optional[Dict[str, Any]]:
        response = self._request("GET", f"/transactions/by_hash/{transaction_hash}")
        if response.status_code == 404:
            # Not yet indexed by the node
            return None
        if response.status_code >= 400:
            raise RemoteReadError(
                f"Transaction lookup failed ({response.status_code}): {self._error_detail(response)}",
                status_code=response.status_code
            )
        return self._json(response, "transaction")

    # ------------------------------------------------------------------
    # Public async API
    # ------------------------------------------------------------------

    async def view(self, call: TransactionIntent) -> List[Any]:
        """
        Execute a view function.

        Args:
            call: Function id, type arguments and arguments

        Returns:
            The positional return values of the function

        Raises:
            RemoteReadError: If the node rejects the call or cannot be reached
        """
        return await asyncio.to_thread(self._view_sync, call)

    async def batch_view(self, calls: Sequence[TransactionIntent]) -> List[ViewResult]:
        """
        Execute several view calls concurrently with settle-all semantics.

        A failing call never cancels the others; each position of the result
        reports its own success or failure.
        """
        outcomes = await asyncio.gather(*(self.view(call) for call in calls), return_exceptions=True)
        results = []
        for call, outcome in zip(calls, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                results.append(ViewResult(call=call, error=outcome))
            else:
                results.append(ViewResult(call=call, value=outcome))
        return results

    async def get_resource(self, address: str, resource_type: str) -> Dict[str, Any]:
        """
        Read an account resource.

        Raises:
            ResourceNotFound: If the account has no such resource
            RemoteReadError: For any other failure
        """
        return await asyncio.to_thread(self._get_resource_sync, address, resource_type)

    async def resource_exists(self, address: str, resource_type: str) -> bool:
        try:
            await self.get_resource(address, resource_type)
        except ResourceNotFound:
            return False
        return True

    async def wait_for_transaction(self, transaction_hash: str) -> Dict[str, Any]:
        """
        Block until a transaction is committed.

        Args:
            transaction_hash: Hash returned by the wallet

        Returns:
            The committed transaction as reported by the node

        Raises:
            TransactionRejected: If the transaction committed with a failure status
            ConfirmationTimeout: If it is not committed within ``confirm_timeout``
            RemoteReadError: If the node cannot be queried
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.confirm_timeout

        while True:
            txn = await asyncio.to_thread(self._get_transaction_sync, transaction_hash)
            if txn is not None and txn.get("type") != PENDING_TRANSACTION:
                if txn.get("success") is False:
                    vm_status = txn.get("vm_status")
                    raise TransactionRejected(
                        f"Transaction {transaction_hash} failed: {vm_status}",
                        transaction_hash=transaction_hash,
                        vm_status=vm_status
                    )
                self.logger.debug(f"Transaction {transaction_hash} committed at version {txn.get('version')}")
                return txn

            if loop.time() >= deadline:
                raise ConfirmationTimeout(
                    f"Transaction {transaction_hash} not confirmed after {self.confirm_timeout}s",
                    transaction_hash=transaction_hash
                )
            await asyncio.sleep(self.poll_interval)

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()
