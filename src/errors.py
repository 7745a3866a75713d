from typing import Optional


class LedgerError(Exception):
    """Base class for a record the ledger refuses to apply."""

    def __init__(self, message: str, transaction_id: Optional[int] = None, client_id: Optional[int] = None):
        super().__init__(message)
        self.transaction_id = transaction_id
        self.client_id = client_id


class DuplicateTransaction(LedgerError):
    pass


class InsufficientFunds(LedgerError):
    pass


class AccountLocked(LedgerError):
    pass


class InvalidAmount(LedgerError):
    pass


class UnknownAccount(LedgerError):
    pass


class UnknownTransaction(LedgerError):
    pass


class ClientMismatch(LedgerError):
    pass


class InvalidDisputeState(LedgerError):
    pass


class InvariantViolation(LedgerError):
    pass
