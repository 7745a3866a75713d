import csv
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Dict, TextIO

from models import ClientAccount

HEADER = ["client", "available", "held", "total", "locked"]
PRECISION = Decimal("0.0001")


def format_decimal(value: Decimal) -> str:
    """Format decimal with up to 4 decimal places, removing trailing zeros."""
    normalized = value.quantize(PRECISION, rounding=ROUND_HALF_EVEN).normalize()
    if normalized.is_zero():
        # avoids "-0" and "0E+1"
        return "0"
    return f"{normalized:f}"


def account_row(account: ClientAccount) -> list:
    return [
        account.client_id,
        format_decimal(account.available),
        format_decimal(account.held),
        format_decimal(account.total),
        str(account.locked).lower(),
    ]


def write_accounts(accounts: Dict[int, ClientAccount], stream: TextIO) -> None:
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(HEADER)
    for client_id in sorted(accounts.keys()):
        writer.writerow(account_row(accounts[client_id]))
