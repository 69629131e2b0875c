"""Wallet endpoints."""
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import Caller, get_current_caller
from app.schemas.common import ERROR_RESPONSES
from app.schemas.wallet import (
    WalletBalance,
    WalletCharge,
    WalletChargeResult,
    WalletTransactionInDB,
)
from app.services.wallet_service import wallet_service

router = APIRouter(prefix="/wallet", tags=["wallet"], responses=ERROR_RESPONSES)


@router.get("", response_model=WalletBalance)
async def get_wallet_balance(
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """Get the caller's wallet balance, creating the wallet if needed."""
    balance = await wallet_service.get_balance(db, caller.user_id)
    return WalletBalance(balance=balance)


@router.post("/charge", response_model=WalletChargeResult)
async def charge_wallet(
    charge: WalletCharge,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """Top up the caller's wallet through the payment gateway."""
    _, transaction_id = await wallet_service.charge_wallet(db, caller.user_id, charge.amount)
    balance = await wallet_service.get_balance(db, caller.user_id)
    return WalletChargeResult(
        transaction_id=transaction_id,
        balance=balance,
        message=f"Your wallet was charged with {charge.amount}",
    )


@router.get("/transactions", response_model=List[WalletTransactionInDB])
async def list_wallet_transactions(
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's 50 most recent wallet transactions."""
    return await wallet_service.list_transactions(db, caller.user_id)
