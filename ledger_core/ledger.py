"""
Ledger Engine

Records deposits and withdrawals against the ledger storage and derives
balances from the recorded transactions. Enforces the per-account currency
lock, idempotent replay of client references and the overdraft policy of
each account type. Balances are never stored, always recomputed.
"""

from decimal import Decimal, InvalidOperation
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple, Union
from enum import Enum
import uuid

from .models import AccountSummary, AccountType, Transaction, TransactionType
from .storage import LedgerStorage
from .policies import get_overdraft_policy
from .exceptions import (
    CurrencyMismatchError, InsufficientFundsError, InternalError, ValidationError
)
from .logging_config import get_logger, log_action


# Latest representable instant; "current" balance includes future-dated entries
MAX_TIMESTAMP = datetime.max.replace(tzinfo=timezone.utc)


class OutcomeStatus(Enum):
    """Result kinds of a transaction submission"""
    OK = "ok"
    VALIDATION_ERROR = "validation_error"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class TransactionOutcome:
    """Explicit result of submit_transaction"""
    status: OutcomeStatus
    transaction: Optional[Transaction] = None
    message: Optional[str] = None
    replayed: bool = False

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.OK


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _is_aware(value: datetime) -> bool:
    return value.tzinfo is not None and value.utcoffset() is not None


class LedgerService:
    """
    Transaction recording and balance computation over a LedgerStorage.
    Holds no account state of its own; every call re-reads the storage.
    """

    def __init__(self, storage: LedgerStorage,
                 clock: Optional[Callable[[], datetime]] = None):
        self.storage = storage
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = get_logger("ledger.engine")

    def record_transaction(
        self,
        account_id: str,
        account_type: Optional[AccountType],
        transaction_type: Optional[TransactionType],
        amount: Union[Decimal, int, str, None],
        timestamp: Optional[datetime] = None,
        reference_id: Optional[str] = None,
        transaction_code: Optional[str] = None,
        currency: Optional[str] = None
    ) -> Transaction:
        """
        Record a deposit or withdrawal for an account

        Args:
            account_id: Account to record against
            account_type: SAVINGS or CREDIT_CARD, selects the overdraft policy
            transaction_type: DEPOSIT or WITHDRAWAL
            amount: Non-negative amount
            timestamp: Effective time, defaults to now
            reference_id: Optional idempotency key, unique per account
            transaction_code: Optional business tag
            currency: Currency code; must match the account's bound currency

        Returns:
            The new Transaction, or the original one when reference_id
            was already recorded for this account

        Raises:
            ValidationError: If input is invalid or the currency does not match
            InsufficientFundsError: If the overdraft policy rejects a withdrawal
            InternalError: If a registered reference has no stored transaction
        """
        transaction, _ = self._record(
            account_id, account_type, transaction_type, amount,
            timestamp, reference_id, transaction_code, currency
        )
        return transaction

    def submit_transaction(
        self,
        account_id: str,
        account_type: Optional[AccountType],
        transaction_type: Optional[TransactionType],
        amount: Union[Decimal, int, str, None],
        timestamp: Optional[datetime] = None,
        reference_id: Optional[str] = None,
        transaction_code: Optional[str] = None,
        currency: Optional[str] = None
    ) -> TransactionOutcome:
        """
        Same as record_transaction, but returns business failures as a
        TransactionOutcome instead of raising them
        """
        try:
            transaction, replayed = self._record(
                account_id, account_type, transaction_type, amount,
                timestamp, reference_id, transaction_code, currency
            )
        except ValidationError as e:
            return TransactionOutcome(OutcomeStatus.VALIDATION_ERROR, message=str(e))
        except InsufficientFundsError as e:
            return TransactionOutcome(OutcomeStatus.INSUFFICIENT_FUNDS, message=str(e))
        except InternalError as e:
            return TransactionOutcome(OutcomeStatus.INTERNAL_ERROR, message=str(e))

        return TransactionOutcome(OutcomeStatus.OK, transaction=transaction, replayed=replayed)

    def _record(
        self,
        account_id: str,
        account_type: Optional[AccountType],
        transaction_type: Optional[TransactionType],
        amount: Union[Decimal, int, str, None],
        timestamp: Optional[datetime],
        reference_id: Optional[str],
        transaction_code: Optional[str],
        currency: Optional[str]
    ) -> Tuple[Transaction, bool]:
        """Validate and record; returns the transaction and whether it was a replay"""
        account_type, transaction_type, amount = self._validate(
            account_id, account_type, transaction_type, amount, timestamp, currency
        )
        currency_code = currency.strip().upper()

        with self.storage.account_lock(account_id):
            bound_currency = self.storage.get_currency(account_id)
            if bound_currency is not None and bound_currency.upper() != currency_code:
                self._log_rejection(account_id, "currency_mismatch",
                                    {"expected": bound_currency, "received": currency_code})
                raise CurrencyMismatchError(account_id, bound_currency, currency)

            if not self.storage.check_and_add_idempotency(account_id, reference_id):
                existing = self.storage.find_by_reference(account_id, reference_id)
                if existing is None:
                    raise InternalError(
                        f"Idempotent reference {reference_id} recorded for account "
                        f"{account_id} but transaction missing"
                    )
                log_action(
                    self.logger, "info", "Idempotent replay",
                    account_id=account_id, action="replay", resource="transaction",
                    extra={"transaction_id": existing.id, "reference_id": reference_id}
                )
                return existing, True

            try:
                self._enforce_overdraft_policy(account_id, account_type, transaction_type, amount)

                transaction = Transaction(
                    id=str(uuid.uuid4()),
                    account_id=account_id,
                    account_type=account_type,
                    transaction_type=transaction_type,
                    amount=amount,
                    currency=currency_code,
                    timestamp=timestamp if timestamp is not None else self._clock(),
                    reference_id=reference_id,
                    transaction_code=transaction_code
                )

                if bound_currency is None:
                    self.storage.set_currency(account_id, currency_code)
                self.storage.append_transaction(account_id, transaction)
            except Exception:
                # A failed request must not leave its reference behind
                self.storage.release_idempotency(account_id, reference_id)
                raise

        log_action(
            self.logger, "info", f"Transaction recorded: {transaction.transaction_type.value}",
            account_id=account_id, action="record", resource="transaction",
            extra={
                "transaction_id": transaction.id,
                "amount": str(transaction.amount),
                "currency": transaction.currency,
                "reference_id": reference_id
            }
        )
        return transaction, False

    def _validate(
        self,
        account_id: str,
        account_type: Optional[AccountType],
        transaction_type: Optional[TransactionType],
        amount: Union[Decimal, int, str, None],
        timestamp: Optional[datetime],
        currency: Optional[str]
    ) -> Tuple[AccountType, TransactionType, Decimal]:
        """Check required fields and return the enums and amount in canonical form"""
        if _is_blank(account_id):
            raise ValidationError("accountId required")
        if account_type is None:
            raise ValidationError("accountType required")
        if transaction_type is None:
            raise ValidationError("transaction type required")

        try:
            account_type = AccountType(account_type)
        except ValueError:
            raise ValidationError(f"unknown accountType: {account_type!r}")
        try:
            transaction_type = TransactionType(transaction_type)
        except ValueError:
            raise ValidationError(f"unknown transaction type: {transaction_type!r}")

        if amount is None:
            raise ValidationError("amount must be >= 0")

        if not isinstance(amount, Decimal):
            try:
                amount = Decimal(str(amount))
            except InvalidOperation:
                raise ValidationError(f"amount is not a number: {amount!r}")

        if not amount.is_finite():
            raise ValidationError("amount must be a finite number")
        if amount < Decimal('0'):
            raise ValidationError("amount must be >= 0")
        if _is_blank(currency):
            raise ValidationError("currency required")
        if timestamp is not None and not _is_aware(timestamp):
            raise ValidationError("timestamp must include a UTC offset")

        return account_type, transaction_type, amount

    def _enforce_overdraft_policy(
        self,
        account_id: str,
        account_type: AccountType,
        transaction_type: TransactionType,
        amount: Decimal
    ) -> None:
        """Raise InsufficientFundsError if a withdrawal breaks the account's policy"""
        if transaction_type != TransactionType.WITHDRAWAL:
            return

        policy = get_overdraft_policy(account_type)
        if not policy.requires_balance:
            return

        balance = self.get_current_balance(account_id)
        if not policy.permits(balance, amount):
            self._log_rejection(account_id, "insufficient_funds",
                                {"balance": str(balance), "amount": str(amount),
                                 "policy": policy.name})
            raise InsufficientFundsError(account_id, balance, amount)

    def _log_rejection(self, account_id: str, reason: str, extra: dict) -> None:
        log_action(
            self.logger, "warning", f"Transaction rejected: {reason}",
            account_id=account_id, action="reject", resource="transaction",
            extra=extra
        )

    def get_current_balance(self, account_id: str) -> Decimal:
        """Balance including every recorded transaction, future-dated ones too"""
        return self.get_balance_at(account_id, MAX_TIMESTAMP)

    def get_balance_at(self, account_id: str, at: datetime) -> Decimal:
        """
        Balance as of a point in time

        Args:
            account_id: Account to compute the balance for
            at: Timezone-aware instant; transactions after it are excluded

        Returns:
            Sum of signed amounts of transactions with timestamp <= at
        """
        if at is None or not _is_aware(at):
            raise ValidationError("at must be a timezone-aware datetime")

        balance = Decimal('0')
        for tx in self.storage.get_transactions_for_account(account_id):
            if tx.timestamp <= at:
                balance += tx.signed_amount
        return balance

    def get_transaction_history(self, account_id: str) -> List[Transaction]:
        """Account transactions ordered by timestamp, append order for ties"""
        transactions = self.storage.get_transactions_for_account(account_id)
        return sorted(transactions, key=lambda tx: tx.timestamp)

    def get_ledger_rows(self) -> List[Transaction]:
        """All transactions across all accounts ordered by timestamp"""
        transactions = self.storage.get_all_transactions()
        return sorted(transactions, key=lambda tx: tx.timestamp)

    def get_account_summary(self, account_id: str) -> Optional[AccountSummary]:
        """Currency, balance and transaction count, or None for unknown accounts"""
        if not self.storage.account_exists(account_id):
            return None

        transactions = self.storage.get_transactions_for_account(account_id)
        return AccountSummary(
            account_id=account_id,
            currency=self.storage.get_currency(account_id),
            balance=sum((tx.signed_amount for tx in transactions), Decimal('0')),
            transaction_count=len(transactions)
        )
