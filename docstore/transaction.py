"""
Transactions.

A Transaction is the caller's reference to an open unit of work on a
document service. Managers pass its id to every service call made with it,
so reads within the transaction see its uncommitted writes and miss the
documents it deleted. Transactions are never opened implicitly.

Used as a context manager a transaction commits when the block exits
cleanly and rolls back when it raises.
"""

import logging
from typing import TYPE_CHECKING, Optional, Type
from types import TracebackType

from docstore.errors import TransactionStateError

if TYPE_CHECKING:
    from docstore.services import DocumentService

logger = logging.getLogger(__name__)


class Transaction:
    def __init__(
        self,
        service: "DocumentService",
        transaction_id: str,
        name: Optional[str] = None,
    ) -> None:
        self.service = service
        self.transaction_id = transaction_id
        self.name = name
        self._finished: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self._finished is None

    def require_open(self) -> str:
        """Id of the transaction, which must still be open."""
        if self._finished is not None:
            raise TransactionStateError(
                f"Transaction {self.transaction_id} was already {self._finished}"
            )
        return self.transaction_id

    def commit(self) -> None:
        self.service.commit(self.require_open())
        self._finished = "committed"
        logger.info(
            "Transaction committed",
            extra={"transaction_id": self.transaction_id, "name": self.name},
        )

    def rollback(self) -> None:
        self.service.rollback(self.require_open())
        self._finished = "rolled back"
        logger.info(
            "Transaction rolled back",
            extra={"transaction_id": self.transaction_id, "name": self.name},
        )

    def __enter__(self) -> "Transaction":
        self.require_open()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        if not self.is_open:
            return
        if exc_type is None:
            self.commit()
        else:
            logger.warning(
                "Rolling back transaction after error",
                extra={
                    "transaction_id": self.transaction_id,
                    "error_type": exc_type.__name__,
                },
            )
            self.rollback()

    def __repr__(self) -> str:
        state = "open" if self.is_open else self._finished
        return f"<Transaction {self.transaction_id} {state}>"


def transaction_id_of(transaction: Optional[Transaction]) -> Optional[str]:
    """Service-level id for an optional transaction."""
    if transaction is None:
        return None
    return transaction.require_open()
