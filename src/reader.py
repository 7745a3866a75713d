import csv
import logging
from contextlib import contextmanager
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, Iterator, Optional

from models import Transaction, TransactionType

logger = logging.getLogger(__name__)


class MalformedRow(ValueError):
    pass


def read_transactions(lines: Iterable[str]) -> Iterator[Transaction]:
    """
    Lazily parse CSV text with a `type, client, tx, amount` header.
    Rows that cannot be parsed are logged and skipped.
    """
    reader = csv.DictReader(lines)
    for row in reader:
        try:
            yield parse_row(row)
        except MalformedRow as e:
            logger.warning(f"Skipping line {reader.line_num}: {e}")


@contextmanager
def open_transactions(filepath: str) -> Iterator[Iterator[Transaction]]:
    """Open a CSV file and yield its transactions. OSError propagates to the caller."""
    with open(filepath, "r", newline="") as f:
        yield read_transactions(f)


def parse_row(row: Dict[Optional[str], object]) -> Transaction:
    """Parse a CSV row into a Transaction."""
    # extra columns land under the None key; missing trailing ones are None
    normalized = {
        k.strip(): v.strip() if isinstance(v, str) else ""
        for k, v in row.items()
        if k is not None
    }

    try:
        transaction_type = TransactionType(normalized["type"].lower())
        client_id = _parse_id(normalized["client"], "client")
        transaction_id = _parse_id(normalized["tx"], "tx")
    except KeyError as e:
        raise MalformedRow(f"missing column {e}") from None
    except ValueError as e:
        raise MalformedRow(str(e)) from None

    amount = None
    if transaction_type.moves_funds:
        amount = _parse_amount(normalized.get("amount", ""))

    return Transaction(
        transaction_type=transaction_type,
        client_id=client_id,
        transaction_id=transaction_id,
        amount=amount,
    )


def _parse_id(value: str, field: str) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise MalformedRow(f"{field} must be an integer, got {value!r}") from None
    if parsed < 0:
        raise MalformedRow(f"{field} must not be negative, got {parsed}")
    return parsed


def _parse_amount(value: str) -> Decimal:
    if not value:
        raise MalformedRow("amount is required")
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise MalformedRow(f"amount is not a decimal: {value!r}") from None
    if not amount.is_finite():
        raise MalformedRow(f"amount must be finite, got {value!r}")
    return amount
