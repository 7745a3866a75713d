import logging
from decimal import Decimal
from typing import Dict, Iterable, Optional

from config import LedgerPolicy, WithdrawalDisputeMode
from errors import (
    AccountLocked,
    ClientMismatch,
    DuplicateTransaction,
    InvalidAmount,
    InvalidDisputeState,
    InvariantViolation,
    LedgerError,
    UnknownAccount,
    UnknownTransaction,
)
from history import TransactionHistory
from models import (
    ClientAccount,
    DisputeStatus,
    HistoryEntry,
    ProcessingResult,
    ProcessingStats,
    Transaction,
    TransactionType,
)

logger = logging.getLogger(__name__)


class Ledger:
    """
    Applies transactions in arrival order against client accounts.

    Owns the account map and the transaction history. A record that breaks a
    rule is logged and ignored; it never stops processing of the stream.
    """

    def __init__(self, policy: Optional[LedgerPolicy] = None, stats: Optional[ProcessingStats] = None):
        self.policy = policy or LedgerPolicy()
        self.stats = stats or ProcessingStats()
        self._accounts: Dict[int, ClientAccount] = {}
        self._history = TransactionHistory()

    @property
    def history(self) -> TransactionHistory:
        return self._history

    def get_account(self, client_id: int) -> Optional[ClientAccount]:
        return self._accounts.get(client_id)

    def accounts(self) -> Dict[int, ClientAccount]:
        """Return all accounts (for final output)."""
        return dict(self._accounts)

    def process(self, transaction: Transaction) -> ProcessingResult:
        """
        Apply a single transaction.

        Returns:
            APPLIED: balances and/or dispute status changed
            IGNORED: the record was rejected and state is unchanged
        """
        try:
            self._dispatch(transaction)
        except InvalidAmount as e:
            logger.warning(f"Ignoring {transaction}: {e}")
            self.stats.record_ignored(type(e).__name__)
            return ProcessingResult.IGNORED
        except LedgerError as e:
            logger.info(f"Ignoring {transaction}: {e}")
            self.stats.record_ignored(type(e).__name__)
            return ProcessingResult.IGNORED

        self.stats.record_applied()
        return ProcessingResult.APPLIED

    def process_all(self, transactions: Iterable[Transaction]) -> Dict[int, ClientAccount]:
        for transaction in transactions:
            self.process(transaction)
        return self.accounts()

    def check_invariants(self) -> None:
        """Raise InvariantViolation if any account has negative held funds or an inconsistent total."""
        for account in self._accounts.values():
            if account.held < 0:
                raise InvariantViolation(
                    f"client {account.client_id}: negative held {account.held}",
                    client_id=account.client_id,
                )
            if account.total != account.available + account.held:
                raise InvariantViolation(
                    f"client {account.client_id}: total {account.total} is not available + held",
                    client_id=account.client_id,
                )

    def absorb(self, other: "Ledger") -> None:
        """Take over the accounts and history of a ledger that saw disjoint clients and transaction ids."""
        overlap = self._accounts.keys() & other._accounts.keys()
        if overlap:
            raise ValueError(f"clients {sorted(overlap)} are in both ledgers")
        self._history.absorb(other.history)
        self._accounts.update(other._accounts)

    def _dispatch(self, transaction: Transaction) -> None:
        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                self._handle_deposit(transaction)
            case TransactionType.WITHDRAWAL:
                self._handle_withdrawal(transaction)
            case TransactionType.DISPUTE:
                self._handle_dispute(transaction)
            case TransactionType.RESOLVE:
                self._handle_resolve(transaction)
            case TransactionType.CHARGEBACK:
                self._handle_chargeback(transaction)

    def _handle_deposit(self, transaction: Transaction) -> None:
        amount = self._require_amount(transaction)
        account = self._accounts.get(transaction.client_id)
        if account is not None and account.locked and not self.policy.deposits_when_locked:
            raise AccountLocked(
                f"account {account.client_id} is locked",
                transaction_id=transaction.transaction_id,
                client_id=account.client_id,
            )

        self._history.record(transaction.transaction_id, transaction.client_id, amount, TransactionType.DEPOSIT)
        # a rejected deposit never opens an account
        if account is None:
            account = ClientAccount(client_id=transaction.client_id)
            self._accounts[transaction.client_id] = account
        account.apply_deposit(amount)

    def _handle_withdrawal(self, transaction: Transaction) -> None:
        amount = self._require_amount(transaction)
        account = self._accounts.get(transaction.client_id)
        if account is None:
            raise UnknownAccount(
                f"no account for client {transaction.client_id}",
                transaction_id=transaction.transaction_id,
                client_id=transaction.client_id,
            )

        # checked up front so a duplicate never reaches the balance
        if transaction.transaction_id in self._history:
            raise DuplicateTransaction(
                f"transaction {transaction.transaction_id} already recorded",
                transaction_id=transaction.transaction_id,
                client_id=transaction.client_id,
            )

        account.apply_withdrawal(amount, allow_overdraft=self.policy.allow_overdraft)
        self._history.record(transaction.transaction_id, transaction.client_id, amount, TransactionType.WITHDRAWAL)

    def _handle_dispute(self, transaction: Transaction) -> None:
        entry = self._find_entry(transaction)
        allowed = {DisputeStatus.NORMAL}
        if self.policy.allow_redispute:
            allowed.add(DisputeStatus.RESOLVED)
        self._require_status(entry, allowed)

        account = self._accounts[entry.client_id]
        if (
            entry.transaction_type == TransactionType.WITHDRAWAL
            and self.policy.withdrawal_disputes == WithdrawalDisputeMode.REVERSE
        ):
            account.hold_reversal(entry.amount)
        else:
            account.begin_dispute(entry.amount)
        self._history.set_status(entry.transaction_id, DisputeStatus.DISPUTED)

    def _handle_resolve(self, transaction: Transaction) -> None:
        entry = self._find_entry(transaction)
        self._require_status(entry, {DisputeStatus.DISPUTED})

        self._accounts[entry.client_id].resolve_dispute(entry.amount)
        self._history.set_status(entry.transaction_id, DisputeStatus.RESOLVED)

    def _handle_chargeback(self, transaction: Transaction) -> None:
        entry = self._find_entry(transaction)
        self._require_status(entry, {DisputeStatus.DISPUTED})

        self._accounts[entry.client_id].apply_chargeback(entry.amount)
        self._history.set_status(entry.transaction_id, DisputeStatus.CHARGED_BACK)

    def _require_amount(self, transaction: Transaction) -> Decimal:
        amount = transaction.amount
        if amount is None or amount < 0:
            raise InvalidAmount(
                f"{transaction.transaction_type.value} needs a non-negative amount, got {amount}",
                transaction_id=transaction.transaction_id,
                client_id=transaction.client_id,
            )
        return amount

    def _find_entry(self, transaction: Transaction) -> HistoryEntry:
        entry = self._history.find(transaction.transaction_id)
        if entry is None:
            raise UnknownTransaction(
                f"{transaction.transaction_type.value} references unknown transaction {transaction.transaction_id}",
                transaction_id=transaction.transaction_id,
                client_id=transaction.client_id,
            )
        if entry.client_id != transaction.client_id:
            raise ClientMismatch(
                f"transaction {entry.transaction_id} belongs to client {entry.client_id}, not {transaction.client_id}",
                transaction_id=transaction.transaction_id,
                client_id=transaction.client_id,
            )
        return entry

    def _require_status(self, entry: HistoryEntry, allowed: set) -> None:
        if entry.dispute_status not in allowed:
            raise InvalidDisputeState(
                f"transaction {entry.transaction_id} is {entry.dispute_status.value}",
                transaction_id=entry.transaction_id,
                client_id=entry.client_id,
            )
