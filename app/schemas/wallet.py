"""Wallet schemas."""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Literal
from datetime import datetime
from decimal import Decimal

from app.models.wallet import TransactionType, TransactionStatus


class WalletBalance(BaseModel):
    success: Literal[True] = True
    balance: Decimal


class WalletCharge(BaseModel):
    amount: Decimal = Field(..., gt=0)


class WalletChargeResult(BaseModel):
    success: Literal[True] = True
    transaction_id: str
    balance: Decimal
    message: str


class WalletTransactionInDB(BaseModel):
    id: int
    amount: Decimal
    type: TransactionType
    description: Optional[str] = None
    status: TransactionStatus
    booking_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
