import sys
import os
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models import Transaction, TransactionType
from reader import MalformedRow, open_transactions, parse_row, read_transactions


def read(*lines):
    return list(read_transactions(["type, client, tx, amount\n", *[line + "\n" for line in lines]]))


class TestReadTransactions:
    def test_parses_all_kinds(self):
        transactions = read(
            "deposit, 1, 1, 1.0",
            "withdrawal, 1, 2, 0.5",
            "dispute, 1, 1,",
            "resolve, 1, 1,",
            "chargeback, 1, 1,",
        )

        assert transactions == [
            Transaction(TransactionType.DEPOSIT, 1, 1, Decimal("1.0")),
            Transaction(TransactionType.WITHDRAWAL, 1, 2, Decimal("0.5")),
            Transaction(TransactionType.DISPUTE, 1, 1),
            Transaction(TransactionType.RESOLVE, 1, 1),
            Transaction(TransactionType.CHARGEBACK, 1, 1),
        ]

    def test_trims_whitespace_and_case(self):
        assert read("  DEPOSIT ,  7 ,  9 ,  2.5000  ") == [
            Transaction(TransactionType.DEPOSIT, 7, 9, Decimal("2.5")),
        ]

    def test_missing_trailing_amount_column(self):
        assert read("dispute, 1, 4") == [Transaction(TransactionType.DISPUTE, 1, 4)]

    def test_amount_on_dispute_ignored(self):
        assert read("dispute, 1, 4, 9.9") == [Transaction(TransactionType.DISPUTE, 1, 4)]

    def test_is_lazy(self):
        lines = iter(["type,client,tx,amount\n", "deposit,1,1,1\n", "deposit,1,2,1\n"])
        transactions = read_transactions(lines)

        assert next(transactions).transaction_id == 1
        assert next(lines) == "deposit,1,2,1\n"

    @pytest.mark.parametrize("line", [
        "transfer, 1, 1, 1.0",
        "deposit, x, 1, 1.0",
        "deposit, 1, 1.5, 1.0",
        "deposit, -1, 1, 1.0",
        "deposit, 1, 1, abc",
        "deposit, 1, 1,",
        "withdrawal, 1, 1",
        "deposit, 1, 1, NaN",
        "deposit, 1, 1, Infinity",
        "deposit",
    ])
    def test_malformed_rows_skipped(self, line, caplog):
        transactions = read(line, "deposit, 2, 2, 3.0")

        assert transactions == [Transaction(TransactionType.DEPOSIT, 2, 2, Decimal("3.0"))]
        assert "Skipping line 2" in caplog.text

    def test_extra_columns_ignored(self):
        assert read("deposit, 1, 1, 1.0, surplus") == [
            Transaction(TransactionType.DEPOSIT, 1, 1, Decimal("1.0")),
        ]

    def test_negative_amount_passed_through(self):
        # sign is a business rule, not a parsing one
        assert read("deposit, 1, 1, -5")[0].amount == Decimal("-5")


class TestParseRow:
    def test_missing_column(self):
        with pytest.raises(MalformedRow, match="missing column"):
            parse_row({"type": "deposit", "client": "1"})


class TestOpenTransactions:
    def test_reads_file(self, tmp_path):
        csv_file = tmp_path / "test.csv"
        csv_file.write_text("type,client,tx,amount\ndeposit,1,1,1.0\n")

        with open_transactions(str(csv_file)) as transactions:
            assert list(transactions) == [Transaction(TransactionType.DEPOSIT, 1, 1, Decimal("1.0"))]

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(OSError):
            with open_transactions(str(tmp_path / "missing.csv")):
                pass
