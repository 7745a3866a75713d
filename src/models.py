import threading
from collections import Counter
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional

from errors import AccountLocked, InsufficientFunds


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"

    @property
    def moves_funds(self) -> bool:
        return self in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL)


class DisputeStatus(Enum):
    NORMAL = "normal"
    DISPUTED = "disputed"
    RESOLVED = "resolved"
    CHARGED_BACK = "charged_back"


class ProcessingResult(Enum):
    APPLIED = "applied"
    IGNORED = "ignored"


@dataclass(frozen=True)
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass
class HistoryEntry:
    """A successfully applied deposit or withdrawal, kept for later disputes."""

    transaction_id: int
    client_id: int
    amount: Decimal
    transaction_type: TransactionType
    dispute_status: DisputeStatus = DisputeStatus.NORMAL


@dataclass
class ClientAccount:
    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False

    @property
    def total(self) -> Decimal:
        return self.available + self.held

    def apply_deposit(self, amount: Decimal) -> None:
        self.available += amount

    def apply_withdrawal(self, amount: Decimal, allow_overdraft: bool = False) -> None:
        """
        Debit available funds.

        Raises AccountLocked or InsufficientFunds without touching the balances.
        """
        if self.locked:
            raise AccountLocked(f"account {self.client_id} is locked", client_id=self.client_id)
        if not allow_overdraft and self.available < amount:
            raise InsufficientFunds(
                f"account {self.client_id} has {self.available} available, {amount} requested",
                client_id=self.client_id,
            )
        self.available -= amount

    def begin_dispute(self, amount: Decimal) -> None:
        # available may go negative here
        self.available -= amount
        self.held += amount

    def hold_reversal(self, amount: Decimal) -> None:
        """Hold a disputed withdrawal's amount as provisionally returned funds."""
        self.held += amount

    def resolve_dispute(self, amount: Decimal) -> None:
        self.held -= amount
        self.available += amount

    def apply_chargeback(self, amount: Decimal) -> None:
        self.held -= amount
        self.locked = True

    def copy(self) -> "ClientAccount":
        return ClientAccount(self.client_id, self.available, self.held, self.locked)


class ProcessingStats:
    """Thread-safe counters for tracking processing statistics."""

    def __init__(self):
        self._lock = threading.Lock()
        self.applied = 0
        self.ignored = 0
        self.rejections: Counter = Counter()

    def record_applied(self) -> None:
        with self._lock:
            self.applied += 1

    def record_ignored(self, reason: str) -> None:
        with self._lock:
            self.ignored += 1
            self.rejections[reason] += 1

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return {"applied": self.applied, "ignored": self.ignored, **self.rejections}

    def __str__(self) -> str:
        with self._lock:
            return f"Applied: {self.applied}, Ignored: {self.ignored}"
