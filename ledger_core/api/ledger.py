"""
Ledger-wide endpoints
"""

from typing import List

from fastapi import APIRouter, Depends

from .dependencies import get_ledger_service
from .schemas import TransactionResponse
from ..ledger import LedgerService


router = APIRouter()


@router.get("", response_model=List[TransactionResponse])
async def get_ledger_rows(service: LedgerService = Depends(get_ledger_service)):
    """Get every transaction across all accounts ordered by timestamp"""
    return TransactionResponse.from_transactions(service.get_ledger_rows())
