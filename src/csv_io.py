import csv
import logging
from decimal import Decimal, InvalidOperation, ROUND_DOWN
from typing import Callable, Iterable, Iterator, List, Optional, TextIO

from errors import InputSourceError, TransactionParseError
from models import (
    AccountSnapshot,
    Chargeback,
    Deposit,
    Dispute,
    Resolve,
    Transaction,
    TransactionType,
    Withdrawal,
)

logger = logging.getLogger(__name__)

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1

# Four fractional digits; anything finer is truncated
AMOUNT_PRECISION = Decimal("0.0001")

# Largest magnitude of a 64-bit count of 1/10000 units; balances built from
# such amounts stay exact in the default 28-digit decimal context
MAX_AMOUNT = Decimal("922337203685477.5807")

OUTPUT_HEADER = ["client", "available", "held", "total", "locked"]

_FIELD_COUNT = 4


def _parse_unsigned(value: str, name: str, upper_bound: int) -> int:
    if not value:
        raise TransactionParseError(f"missing {name}")
    if not (value.isascii() and value.isdigit()):
        raise TransactionParseError(f"invalid {name} {value!r}")
    number = int(value)
    if number > upper_bound:
        raise TransactionParseError(f"{name} {number} out of range (max {upper_bound})")
    return number


def parse_amount(value: str) -> Decimal:
    """Parse a fixed-point amount, truncated to four fractional digits."""
    if not value:
        raise TransactionParseError("missing amount")
    try:
        amount = Decimal(value)
        if not amount.is_finite():
            raise TransactionParseError(f"invalid amount {value!r}")
        if abs(amount) > MAX_AMOUNT:
            raise TransactionParseError(f"amount {value!r} out of range (max {MAX_AMOUNT})")
        return amount.quantize(AMOUNT_PRECISION, rounding=ROUND_DOWN)
    except InvalidOperation:
        raise TransactionParseError(f"invalid amount {value!r}") from None


def parse_row(fields: List[str]) -> Transaction:
    """
    Turn one CSV row (type, client, tx[, amount]) into a typed transaction.

    Raises:
        TransactionParseError: the row is malformed for its transaction kind
    """
    fields = [field.strip() for field in fields]
    if len(fields) > _FIELD_COUNT and any(fields[_FIELD_COUNT:]):
        raise TransactionParseError(f"expected at most {_FIELD_COUNT} fields, got {len(fields)}")
    fields += [""] * (_FIELD_COUNT - len(fields))
    type_str, client_str, transaction_str, amount_str = fields[:_FIELD_COUNT]

    if not type_str:
        raise TransactionParseError("missing transaction type")
    try:
        transaction_type = TransactionType(type_str.lower())
    except ValueError:
        raise TransactionParseError(f"invalid transaction type {type_str!r}") from None

    client_id = _parse_unsigned(client_str, "client id", MAX_CLIENT_ID)
    transaction_id = _parse_unsigned(transaction_str, "transaction id", MAX_TRANSACTION_ID)

    match transaction_type:
        case TransactionType.DEPOSIT:
            return Deposit(client_id, transaction_id, parse_amount(amount_str))
        case TransactionType.WITHDRAWAL:
            return Withdrawal(client_id, transaction_id, parse_amount(amount_str))
        case TransactionType.DISPUTE:
            return Dispute(client_id, transaction_id)
        case TransactionType.RESOLVE:
            return Resolve(client_id, transaction_id)
        case TransactionType.CHARGEBACK:
            return Chargeback(client_id, transaction_id)


def _is_header(fields: List[str]) -> bool:
    return bool(fields) and fields[0].strip().lower() == "type"


def _log_malformed(error: TransactionParseError) -> None:
    logger.warning(f"Skipping malformed row, {error}")


def read_transactions(
    filepath: str,
    on_malformed: Optional[Callable[[TransactionParseError], None]] = None,
) -> Iterator[Transaction]:
    """
    Stream transactions from a CSV file in file order.

    The header row is optional. Blank lines are skipped. Malformed rows are
    passed to on_malformed (which may raise to abort) and never yielded.

    Raises:
        InputSourceError: the file cannot be opened or read
    """
    handle_malformed = on_malformed or _log_malformed
    try:
        with open(filepath, "r", newline="", encoding="utf-8-sig") as f:
            reader = csv.reader(f)
            first_row = True
            for fields in reader:
                if not any(field.strip() for field in fields):
                    continue
                if first_row:
                    first_row = False
                    if _is_header(fields):
                        continue
                try:
                    transaction = parse_row(fields)
                except TransactionParseError as e:
                    handle_malformed(TransactionParseError(str(e), reader.line_num))
                    continue
                yield transaction
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise InputSourceError(filepath, e) from e


def format_decimal(value: Decimal) -> str:
    """Format decimal with up to 4 decimal places, removing trailing zeros."""
    if not value:
        return "0"
    normalized = value.normalize()
    return f"{normalized:f}"


def write_accounts(accounts: Iterable[AccountSnapshot], stream: TextIO) -> None:
    """Write the final account table as CSV, one row per account."""
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_HEADER)
    for account in accounts:
        writer.writerow([
            account.client_id,
            format_decimal(account.available),
            format_decimal(account.held),
            format_decimal(account.total),
            str(account.locked).lower(),
        ])
