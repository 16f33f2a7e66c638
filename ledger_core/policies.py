"""
Overdraft Policies

Rule table mapping each account type to the overdraft policy applied to its
withdrawals. New account types are supported by adding a table entry.
"""

from decimal import Decimal
from dataclasses import dataclass
from typing import Dict, Optional

from .models import AccountType


@dataclass(frozen=True)
class OverdraftPolicy:
    """
    How far below zero an account may go.
    A limit of None means withdrawals are never rejected.
    """
    name: str
    limit: Optional[Decimal] = None

    @property
    def requires_balance(self) -> bool:
        """Whether the account balance is needed to evaluate this policy"""
        return self.limit is not None

    def permits(self, balance: Decimal, amount: Decimal) -> bool:
        """Check if withdrawing amount from balance stays within the limit"""
        if self.limit is None:
            return True
        return balance - amount >= -self.limit


NO_OVERDRAFT = OverdraftPolicy(name="no_overdraft", limit=Decimal('0'))
UNLIMITED = OverdraftPolicy(name="unlimited")


OVERDRAFT_POLICIES: Dict[AccountType, OverdraftPolicy] = {
    AccountType.SAVINGS: NO_OVERDRAFT,
    AccountType.CREDIT_CARD: UNLIMITED,
}


def get_overdraft_policy(account_type: AccountType) -> OverdraftPolicy:
    """
    Look up the overdraft policy for an account type

    Raises:
        KeyError: If no policy is registered for the account type
    """
    return OVERDRAFT_POLICIES[account_type]
