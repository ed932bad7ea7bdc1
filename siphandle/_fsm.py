"""
Pending-request table for correlated plugin requests.

Every outgoing request carries a correlation id (the gateway "transaction").
A Transaction pairs that id with a future that is resolved, rejected or timed
out exactly once:

  PENDING → SUCCEEDED   (close_with_success)
          → FAILED      (close_with_error)
          → TIMED_OUT   (wait expired)

Closing an unknown or already-closed transaction is a no-op.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ._types import RequestTimeoutError, TransactionState
from ._utils import logger


@dataclass
class Transaction:
    """
    Represents one correlated request awaiting its resolution.
    """

    # Identity
    id: str
    request: Optional[dict] = None

    # State
    state: TransactionState = TransactionState.PENDING
    future: asyncio.Future = field(
        default_factory=lambda: asyncio.get_running_loop().create_future()
    )

    # Timing
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    def transition_to(self, new_state: TransactionState) -> None:
        """
        Transition to a new state.

        Args:
            new_state: The new state
        """
        self.state = new_state
        self.updated_at = time.time()

    def is_pending(self) -> bool:
        """Check if transaction still awaits a resolution."""
        return self.state == TransactionState.PENDING

    @property
    def request_name(self) -> str:
        """Name of the plugin request (``body.request``) or '?'."""
        if self.request:
            return self.request.get("body", {}).get("request", "?")
        return "?"

    def __repr__(self) -> str:
        return f"<Transaction({self.request_name}, {self.state.name}, {self.id[:8]}...)>"


class TransactionManager:
    """
    Tracks the pending transactions of one handle, keyed by correlation id.
    """

    def __init__(self) -> None:
        self._transactions: Dict[str, Transaction] = {}

    def create(self, transaction_id: str, request: Optional[dict] = None) -> Transaction:
        """
        Register a new pending transaction.

        Args:
            transaction_id: Correlation id attached to the request
            request: The request being sent

        Returns:
            New transaction object
        """
        transaction = Transaction(id=transaction_id, request=request)
        self._transactions[transaction_id] = transaction
        logger.debug(f"Transaction opened: {transaction!r}")
        return transaction

    def close_with_success(self, transaction_id: Optional[str], payload: Any) -> bool:
        """
        Resolve a pending transaction.

        Returns:
            True if a pending transaction was resolved
        """
        transaction = self._pop(transaction_id)
        if transaction is None:
            return False
        transaction.transition_to(TransactionState.SUCCEEDED)
        if not transaction.future.done():
            transaction.future.set_result(payload)
        logger.debug(f"Transaction closed: {transaction!r}")
        return True

    def close_with_error(self, transaction_id: Optional[str], error: Exception) -> bool:
        """
        Reject a pending transaction.

        Returns:
            True if a pending transaction was rejected
        """
        transaction = self._pop(transaction_id)
        if transaction is None:
            return False
        transaction.transition_to(TransactionState.FAILED)
        if not transaction.future.done():
            transaction.future.set_exception(error)
        logger.debug(f"Transaction closed: {transaction!r} ({error})")
        return True

    async def wait(self, transaction: Transaction, timeout: Optional[float]) -> Any:
        """
        Wait for a transaction's resolution.

        Raises:
            RequestTimeoutError: If nothing resolves it within ``timeout``
        """
        try:
            return await asyncio.wait_for(asyncio.shield(transaction.future), timeout)
        except asyncio.TimeoutError as e:
            if self._pop(transaction.id) is not None:
                transaction.transition_to(TransactionState.TIMED_OUT)
            raise RequestTimeoutError(
                f"{transaction.request_name} request timed out after {timeout}s"
            ) from e
        finally:
            # Drop the entry if the waiting task itself was cancelled
            if transaction.is_pending() and not transaction.future.done():
                self._pop(transaction.id)
                transaction.future.cancel()

    def discard(self, transaction_id: str) -> None:
        """Drop a transaction without resolving it (e.g. the send failed)."""
        transaction = self._pop(transaction_id)
        if transaction is not None:
            transaction.transition_to(TransactionState.FAILED)
            transaction.future.cancel()

    def fail_all(self, error: Exception) -> int:
        """
        Reject every pending transaction.

        Returns:
            Number of transactions rejected
        """
        ids = list(self._transactions)
        for transaction_id in ids:
            self.close_with_error(transaction_id, error)
        return len(ids)

    def _pop(self, transaction_id: Optional[str]) -> Optional[Transaction]:
        if transaction_id is None:
            return None
        transaction = self._transactions.pop(transaction_id, None)
        if transaction is None:
            logger.debug(f"No pending transaction for id {transaction_id}")
        return transaction

    def __contains__(self, transaction_id: str) -> bool:
        return transaction_id in self._transactions

    def __len__(self) -> int:
        return len(self._transactions)

    def __repr__(self) -> str:
        return f"<TransactionManager({len(self._transactions)} pending)>"
