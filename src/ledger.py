import logging
from typing import Dict, List, Optional, Set, Tuple

from dispute_tracker import DisputeTracker
from models import (
    AccountSnapshot,
    Chargeback,
    ClientAccount,
    Deposit,
    Dispute,
    DisputeRecord,
    DisputeStatus,
    RejectReason,
    Resolve,
    Transaction,
    Withdrawal,
)

logger = logging.getLogger(__name__)


class Ledger:
    """
    Owns every client account and applies transactions to them in arrival order.

    apply() never raises for a bad transaction. It returns the reason the
    transaction was ignored, or None when it was applied. A rejected
    transaction leaves all state untouched.
    """

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}
        self._applied_transaction_ids: Set[int] = set()
        self._disputes = DisputeTracker()

    def apply(self, transaction: Transaction) -> Optional[RejectReason]:
        account = self._get_or_create_account(transaction.client_id)

        if account.locked:
            logger.info(f"Tx {transaction.transaction_id}: client {account.client_id} is locked, ignoring {transaction.transaction_type.value}")
            return RejectReason.ACCOUNT_LOCKED

        match transaction:
            case Deposit():
                return self._handle_deposit(account, transaction)
            case Withdrawal():
                return self._handle_withdrawal(account, transaction)
            case Dispute():
                return self._handle_dispute(account, transaction)
            case Resolve():
                return self._handle_resolve(account, transaction)
            case Chargeback():
                return self._handle_chargeback(account, transaction)
            case _:
                raise TypeError(f"Unsupported transaction {transaction!r}")

    def get_account(self, client_id: int) -> Optional[AccountSnapshot]:
        account = self._accounts.get(client_id)
        if account is None:
            return None
        return account.snapshot()

    def snapshot(self) -> List[AccountSnapshot]:
        """All accounts ever referenced, ordered by client id."""
        return [self._accounts[client_id].snapshot() for client_id in sorted(self._accounts)]

    def __len__(self) -> int:
        return len(self._accounts)

    def _get_or_create_account(self, client_id: int) -> ClientAccount:
        account = self._accounts.get(client_id)
        if account is None:
            account = ClientAccount(client_id=client_id)
            self._accounts[client_id] = account
        return account

    def _check_new_funds_movement(self, transaction) -> Optional[RejectReason]:
        if transaction.amount <= 0:
            logger.warning(f"{transaction.transaction_type.value.capitalize()} tx {transaction.transaction_id}: invalid amount {transaction.amount}")
            return RejectReason.INVALID_AMOUNT

        if transaction.transaction_id in self._applied_transaction_ids:
            logger.info(f"{transaction.transaction_type.value.capitalize()} tx {transaction.transaction_id}: already processed, skipping")
            return RejectReason.DUPLICATE_TRANSACTION

        return None

    def _handle_deposit(self, account: ClientAccount, transaction: Deposit) -> Optional[RejectReason]:
        reason = self._check_new_funds_movement(transaction)
        if reason is not None:
            return reason

        account.credit(transaction.amount)
        self._applied_transaction_ids.add(transaction.transaction_id)
        self._disputes.record_deposit(transaction.transaction_id, account.client_id, transaction.amount)
        return None

    def _handle_withdrawal(self, account: ClientAccount, transaction: Withdrawal) -> Optional[RejectReason]:
        reason = self._check_new_funds_movement(transaction)
        if reason is not None:
            return reason

        if account.available < transaction.amount:
            logger.info(f"Withdrawal tx {transaction.transaction_id}: insufficient funds (available {account.available}, requested {transaction.amount})")
            return RejectReason.INSUFFICIENT_FUNDS

        account.debit(transaction.amount)
        self._applied_transaction_ids.add(transaction.transaction_id)
        return None

    def _find_record(self, transaction: Transaction) -> Tuple[Optional[DisputeRecord], Optional[RejectReason]]:
        record = self._disputes.get(transaction.transaction_id)

        if record is None:
            # Withdrawals never get a record, so disputing one lands here too
            logger.info(f"{transaction.transaction_type.value.capitalize()} for tx {transaction.transaction_id}: no disputable deposit with that id")
            return None, RejectReason.UNKNOWN_TRANSACTION

        if record.client_id != transaction.client_id:
            logger.warning(f"{transaction.transaction_type.value.capitalize()} for tx {transaction.transaction_id}: client mismatch (expected {record.client_id}, got {transaction.client_id})")
            return None, RejectReason.CLIENT_MISMATCH

        return record, None

    def _handle_dispute(self, account: ClientAccount, transaction: Dispute) -> Optional[RejectReason]:
        record, reason = self._find_record(transaction)
        if reason is not None:
            return reason

        if record.status != DisputeStatus.NONE:
            logger.info(f"Dispute for tx {transaction.transaction_id}: transaction already disputed")
            return RejectReason.ALREADY_DISPUTED

        account.hold(record.amount)
        self._disputes.open_dispute(record.transaction_id)
        return None

    def _handle_resolve(self, account: ClientAccount, transaction: Resolve) -> Optional[RejectReason]:
        record, reason = self._find_record(transaction)
        if reason is not None:
            return reason

        if record.status != DisputeStatus.DISPUTED:
            logger.info(f"Resolve for tx {transaction.transaction_id}: transaction is not under dispute")
            return RejectReason.NOT_DISPUTED

        account.release_hold(record.amount)
        self._disputes.resolve(record.transaction_id)
        return None

    def _handle_chargeback(self, account: ClientAccount, transaction: Chargeback) -> Optional[RejectReason]:
        record, reason = self._find_record(transaction)
        if reason is not None:
            return reason

        if record.status != DisputeStatus.DISPUTED:
            logger.info(f"Chargeback for tx {transaction.transaction_id}: transaction is not under dispute")
            return RejectReason.NOT_DISPUTED

        account.remove_held(record.amount)
        account.lock()
        self._disputes.charge_back(record.transaction_id)
        return None
