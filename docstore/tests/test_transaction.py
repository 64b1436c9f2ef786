"""
Tests for Transaction.
"""

from unittest.mock import MagicMock

import pytest

from docstore.errors import TransactionStateError
from docstore.services import MemoryDocumentService
from docstore.transaction import Transaction, transaction_id_of


@pytest.fixture
def service() -> MagicMock:
    return MagicMock(spec=MemoryDocumentService)


class TestTransaction:
    def test_commit(self, service: MagicMock) -> None:
        transaction = Transaction(service, "tx-1", "load")
        transaction.commit()
        service.commit.assert_called_once_with("tx-1")
        assert not transaction.is_open

    def test_rollback(self, service: MagicMock) -> None:
        transaction = Transaction(service, "tx-1")
        transaction.rollback()
        service.rollback.assert_called_once_with("tx-1")
        assert "rolled back" in repr(transaction)

    def test_cannot_finish_twice(self, service: MagicMock) -> None:
        transaction = Transaction(service, "tx-1")
        transaction.commit()
        with pytest.raises(TransactionStateError):
            transaction.rollback()
        with pytest.raises(TransactionStateError):
            transaction.require_open()
        service.rollback.assert_not_called()

    def test_failed_commit_leaves_transaction_open(self, service: MagicMock) -> None:
        service.commit.side_effect = TransactionStateError("unknown")
        transaction = Transaction(service, "tx-1")
        with pytest.raises(TransactionStateError):
            transaction.commit()
        assert transaction.is_open

    def test_transaction_id_of(self, service: MagicMock) -> None:
        assert transaction_id_of(None) is None
        assert transaction_id_of(Transaction(service, "tx-2")) == "tx-2"


class TestTransactionContextManager:
    def test_commits_on_clean_exit(self, service: MagicMock) -> None:
        with Transaction(service, "tx-1") as transaction:
            assert transaction.is_open
        service.commit.assert_called_once_with("tx-1")
        service.rollback.assert_not_called()

    def test_rolls_back_on_error(self, service: MagicMock) -> None:
        with pytest.raises(KeyError):
            with Transaction(service, "tx-1"):
                raise KeyError("boom")
        service.rollback.assert_called_once_with("tx-1")
        service.commit.assert_not_called()

    def test_explicitly_finished_inside_block(self, service: MagicMock) -> None:
        with Transaction(service, "tx-1") as transaction:
            transaction.rollback()
        service.commit.assert_not_called()

    def test_memory_service_round_trip(self) -> None:
        memory = MemoryDocumentService()
        with Transaction(memory, memory.open_transaction()) as transaction:
            transaction_id = transaction.transaction_id
        with pytest.raises(TransactionStateError):
            memory.commit(transaction_id)
