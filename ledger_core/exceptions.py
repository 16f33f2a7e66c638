"""
Ledger Exception Hierarchy

Business errors raised by the ledger engine. The HTTP layer maps these to
client (4xx) or server (5xx) responses.
"""

from decimal import Decimal
from typing import Optional


class LedgerError(Exception):
    """Base exception for all ledger errors"""


class ValidationError(LedgerError, ValueError):
    """Raised when a request is malformed or violates an account rule"""


class CurrencyMismatchError(ValidationError):
    """Raised when a transaction currency differs from the account's bound currency"""

    def __init__(self, account_id: str, expected: str, received: str):
        self.account_id = account_id
        self.expected = expected
        self.received = received
        super().__init__(
            f"Currency mismatch for account {account_id}: "
            f"expected '{expected}', got '{received}'"
        )


class InsufficientFundsError(LedgerError):
    """Raised when a withdrawal would exceed what the account's policy allows"""

    def __init__(self, account_id: str, balance: Optional[Decimal] = None,
                 amount: Optional[Decimal] = None):
        self.account_id = account_id
        self.balance = balance
        self.amount = amount
        super().__init__("Insufficient funds for withdrawal")


class InternalError(LedgerError):
    """Raised when storage and engine state disagree"""
