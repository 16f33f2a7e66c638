"""
Account endpoints: recording transactions, history and balances
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from .dependencies import get_ledger_service, parse_timestamp
from .schemas import (
    AccountSummaryResponse, BalanceResponse, TransactionRequest, TransactionResponse
)
from ..ledger import LedgerService
from ..exceptions import ValidationError


router = APIRouter()


@router.post("/{account_id}/transactions", response_model=TransactionResponse)
async def create_transaction(
    account_id: str,
    request: TransactionRequest,
    service: LedgerService = Depends(get_ledger_service)
):
    """Record a deposit or withdrawal; repeated referenceIds return the original"""
    transaction = service.record_transaction(
        account_id=account_id,
        account_type=request.account_type,
        transaction_type=request.type,
        amount=request.amount,
        timestamp=parse_timestamp(request.timestamp),
        reference_id=request.reference_id,
        transaction_code=request.transaction_code,
        currency=request.currency
    )
    return TransactionResponse.from_transaction(transaction)


@router.get("/{account_id}/transactions", response_model=List[TransactionResponse])
async def get_account_transactions(
    account_id: str,
    service: LedgerService = Depends(get_ledger_service)
):
    """Get account transactions ordered by timestamp"""
    return TransactionResponse.from_transactions(service.get_transaction_history(account_id))


@router.get("/{account_id}/balance", response_model=BalanceResponse)
async def get_current_balance(
    account_id: str,
    service: LedgerService = Depends(get_ledger_service)
):
    """Get the balance including all recorded transactions"""
    balance = service.get_current_balance(account_id)
    return BalanceResponse(account_id=account_id, balance=str(balance))


@router.get("/{account_id}/balanceAt", response_model=BalanceResponse)
async def get_balance_at(
    account_id: str,
    at: str = Query(..., description="ISO-8601 date-time with offset"),
    service: LedgerService = Depends(get_ledger_service)
):
    """Get the balance as of a point in time"""
    at_time = parse_timestamp(at, field_name="at")
    if at_time is None:
        raise ValidationError("at required")

    balance = service.get_balance_at(account_id, at_time)
    return BalanceResponse(account_id=account_id, balance=str(balance), at=at_time.isoformat())


@router.get("/{account_id}", response_model=AccountSummaryResponse)
async def get_account(
    account_id: str,
    service: LedgerService = Depends(get_ledger_service)
):
    """Get currency, balance and transaction count for an account"""
    summary = service.get_account_summary(account_id)
    if summary is None:
        raise HTTPException(status_code=404, detail="Account not found")
    return AccountSummaryResponse.from_summary(summary)
