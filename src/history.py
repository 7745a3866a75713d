from decimal import Decimal
from typing import Dict, Iterator, Optional

from errors import DuplicateTransaction, UnknownTransaction
from models import DisputeStatus, HistoryEntry, TransactionType


class TransactionHistory:
    """
    Applied deposits and withdrawals keyed by transaction id.
    Entries are never removed; only their dispute status changes.
    Transition rules are enforced by the Ledger, not here.
    """

    def __init__(self):
        self._entries: Dict[int, HistoryEntry] = {}

    def record(
        self,
        transaction_id: int,
        client_id: int,
        amount: Decimal,
        transaction_type: TransactionType = TransactionType.DEPOSIT,
    ) -> HistoryEntry:
        """Insert a new entry with NORMAL status. Raises DuplicateTransaction if the id is taken."""
        if transaction_id in self._entries:
            raise DuplicateTransaction(
                f"transaction {transaction_id} already recorded",
                transaction_id=transaction_id,
                client_id=client_id,
            )
        entry = HistoryEntry(transaction_id, client_id, amount, transaction_type)
        self._entries[transaction_id] = entry
        return entry

    def absorb(self, other: "TransactionHistory") -> None:
        """Move every entry of another history into this one. Ids must not overlap."""
        for entry in other:
            if entry.transaction_id in self._entries:
                raise DuplicateTransaction(
                    f"transaction {entry.transaction_id} already recorded",
                    transaction_id=entry.transaction_id,
                    client_id=entry.client_id,
                )
        self._entries.update((entry.transaction_id, entry) for entry in other)

    def find(self, transaction_id: int) -> Optional[HistoryEntry]:
        return self._entries.get(transaction_id)

    def set_status(self, transaction_id: int, status: DisputeStatus) -> None:
        entry = self._entries.get(transaction_id)
        if entry is None:
            raise UnknownTransaction(f"transaction {transaction_id} not recorded", transaction_id=transaction_id)
        entry.dispute_status = status

    def __contains__(self, transaction_id: int) -> bool:
        return transaction_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self._entries.values())
