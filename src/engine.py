import logging
import sys
from typing import Iterable, List, Optional

from config import EngineConfig
from csv_io import read_transactions
from errors import TransactionParseError, TransactionRejectedError
from ledger import Ledger
from models import AccountSnapshot, ProcessingStats, Transaction, describe

logger = logging.getLogger(__name__)


class PaymentsEngine:
    """
    Replays a transaction stream against a fresh Ledger, one transaction at a time,
    strictly in input order.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self._config = config or EngineConfig()
        self._ledger = Ledger()
        self._stats = ProcessingStats()

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    def process_file(self, filepath: str) -> List[AccountSnapshot]:
        """
        Process CSV file and return final account states.

        Raises:
            InputSourceError: the file cannot be opened or read
            TransactionParseError, TransactionRejectedError: strict mode only
        """
        logger.info(f"Replaying transactions from {filepath}")
        self.process_transactions(read_transactions(filepath, on_malformed=self._handle_malformed))
        logger.info("Replay complete")

        print(
            f"Processed: {self._stats.processed}, "
            f"Rejected: {self._stats.rejected}, "
            f"Malformed: {self._stats.malformed}",
            file=sys.stderr
        )

        return self._ledger.snapshot()

    def process_transactions(self, transactions: Iterable[Transaction]) -> List[AccountSnapshot]:
        for transaction in transactions:
            self._process_transaction(transaction)
        return self._ledger.snapshot()

    def _process_transaction(self, transaction: Transaction) -> None:
        reason = self._ledger.apply(transaction)
        if reason is None:
            self._stats.record_success()
            return

        self._stats.record_rejection(reason)
        logger.debug(f"Ignored {describe(transaction)}: {reason.value}")
        if self._config.strict:
            raise TransactionRejectedError(transaction, reason)

    def _handle_malformed(self, error: TransactionParseError) -> None:
        self._stats.record_malformed()
        if self._config.strict:
            raise error
        logger.warning(f"Skipping malformed row, {error}")
