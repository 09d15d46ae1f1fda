from typing import Optional

from models import RejectReason, Transaction, describe


class PaymentsEngineError(Exception):
    """Base class for errors raised by the payments engine."""


class InputSourceError(PaymentsEngineError):
    """The transaction source could not be opened or read. Always fatal."""

    def __init__(self, source: str, cause: Exception):
        super().__init__(f"Unable to read {source!r}: {cause}")
        self.source = source
        self.cause = cause


class TransactionParseError(PaymentsEngineError, ValueError):
    """A row could not be turned into a transaction."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


class TransactionRejectedError(PaymentsEngineError):
    """Raised in strict mode when the ledger refuses a transaction."""

    def __init__(self, transaction: Transaction, reason: RejectReason):
        super().__init__(f"Transaction rejected ({reason.value}): {describe(transaction)}")
        self.transaction = transaction
        self.reason = reason
