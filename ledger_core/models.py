"""
Ledger Data Model

Immutable transaction records and the enums that classify them. Amounts are
always Decimal; a record is never changed once the engine has created it.
"""

from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass
from typing import Any, Dict, Optional
from enum import Enum

from .exceptions import ValidationError


class AccountType(Enum):
    """Account types, each with its own overdraft policy"""
    SAVINGS = "SAVINGS"          # Balance may never go below zero
    CREDIT_CARD = "CREDIT_CARD"  # Withdrawals are charges, no limit


class TransactionType(Enum):
    """Direction of a money movement"""
    DEPOSIT = "DEPOSIT"        # Money in (savings) / payment (credit card)
    WITHDRAWAL = "WITHDRAWAL"  # Money out (savings) / charge (credit card)


@dataclass(frozen=True)
class Transaction:
    """
    A single ledger entry for one account.
    Frozen so that the append-only ledger cannot be rewritten.
    """
    id: str
    account_id: str
    account_type: AccountType
    transaction_type: TransactionType
    amount: Decimal
    currency: str
    timestamp: datetime
    reference_id: Optional[str] = None       # Client idempotency key
    transaction_code: Optional[str] = None   # Business tag, e.g. "ATM-DEP-001"

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))

        if not self.amount.is_finite():
            raise ValidationError("amount must be a finite number")

        if self.amount < Decimal('0'):
            raise ValidationError("amount must be >= 0")

    @property
    def is_deposit(self) -> bool:
        """Check if this transaction moves money into the account"""
        return self.transaction_type == TransactionType.DEPOSIT

    @property
    def signed_amount(self) -> Decimal:
        """Amount with the sign this transaction contributes to the balance"""
        return self.amount if self.is_deposit else -self.amount

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary"""
        return {
            "id": self.id,
            "account_id": self.account_id,
            "account_type": self.account_type.value,
            "transaction_type": self.transaction_type.value,
            "amount": str(self.amount),
            "currency": self.currency,
            "timestamp": self.timestamp.isoformat(),
            "reference_id": self.reference_id,
            "transaction_code": self.transaction_code,
        }


@dataclass(frozen=True)
class AccountSummary:
    """Point-in-time view of an account derived from its transactions"""
    account_id: str
    currency: Optional[str]
    balance: Decimal
    transaction_count: int
