from decimal import Decimal
from typing import Dict, Optional

from models import DisputeRecord, DisputeStatus


class DisputeTracker:
    """
    Remembers every applied deposit so it can later be disputed.
    Records are created once per transaction id and never removed;
    only their status changes.
    """

    def __init__(self):
        self._records: Dict[int, DisputeRecord] = {}

    def __contains__(self, transaction_id: int) -> bool:
        return transaction_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def record_deposit(self, transaction_id: int, client_id: int, amount: Decimal) -> DisputeRecord:
        """
        Store a deposit as a future dispute target.
        An existing record for the same id is returned untouched.
        """
        existing = self._records.get(transaction_id)
        if existing is not None:
            return existing
        record = DisputeRecord(transaction_id=transaction_id, client_id=client_id, amount=amount)
        self._records[transaction_id] = record
        return record

    def get(self, transaction_id: int) -> Optional[DisputeRecord]:
        """Retrieve the record for a deposit by ID."""
        return self._records.get(transaction_id)

    def open_dispute(self, transaction_id: int) -> bool:
        """None -> Disputed. Returns False if the transition is not allowed."""
        return self._transition(transaction_id, DisputeStatus.NONE, DisputeStatus.DISPUTED)

    def resolve(self, transaction_id: int) -> bool:
        """Disputed -> None."""
        return self._transition(transaction_id, DisputeStatus.DISPUTED, DisputeStatus.NONE)

    def charge_back(self, transaction_id: int) -> bool:
        """Disputed -> ChargedBack. Terminal."""
        return self._transition(transaction_id, DisputeStatus.DISPUTED, DisputeStatus.CHARGED_BACK)

    def _transition(self, transaction_id: int, expected: DisputeStatus, target: DisputeStatus) -> bool:
        record = self._records.get(transaction_id)
        if record is None or record.status != expected:
            return False
        record.status = target
        return True
