"""
Pydantic schemas for API requests and responses
"""

from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field

from ..models import AccountSummary, AccountType, Transaction, TransactionType


class TransactionRequest(BaseModel):
    account_type: Optional[AccountType] = Field(None, alias="accountType")
    type: Optional[TransactionType] = Field(None, description="DEPOSIT or WITHDRAWAL")
    amount: Optional[Decimal] = Field(None, description="Non-negative decimal amount")
    currency: Optional[str] = Field(None, description="Currency code (USD, INR, etc.)")
    reference_id: Optional[str] = Field(None, alias="referenceId",
                                        description="Optional idempotency key")
    timestamp: Optional[str] = Field(None, description="ISO-8601 date-time with offset")
    transaction_code: Optional[str] = Field(None, alias="transactionCode")

    class Config:
        populate_by_name = True


class TransactionResponse(BaseModel):
    id: str
    account_id: str
    account_type: str
    type: str
    amount: str = Field(..., description="Decimal amount as string")
    currency: str
    timestamp: str
    reference_id: Optional[str] = None
    transaction_code: Optional[str] = None

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> 'TransactionResponse':
        return cls(
            id=transaction.id,
            account_id=transaction.account_id,
            account_type=transaction.account_type.value,
            type=transaction.transaction_type.value,
            amount=str(transaction.amount),
            currency=transaction.currency,
            timestamp=transaction.timestamp.isoformat(),
            reference_id=transaction.reference_id,
            transaction_code=transaction.transaction_code
        )

    @classmethod
    def from_transactions(cls, transactions: List[Transaction]) -> List['TransactionResponse']:
        return [cls.from_transaction(tx) for tx in transactions]


class BalanceResponse(BaseModel):
    account_id: str
    balance: str = Field(..., description="Decimal balance as string")
    at: Optional[str] = None


class AccountSummaryResponse(BaseModel):
    account_id: str
    currency: Optional[str] = None
    balance: str
    transaction_count: int

    @classmethod
    def from_summary(cls, summary: AccountSummary) -> 'AccountSummaryResponse':
        return cls(
            account_id=summary.account_id,
            currency=summary.currency,
            balance=str(summary.balance),
            transaction_count=summary.transaction_count
        )
