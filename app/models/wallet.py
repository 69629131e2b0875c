"""Wallet ledger models."""
import enum

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Numeric, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.clock import utcnow
from app.core.database import Base


class TransactionType(str, enum.Enum):
    CHARGE = "CHARGE"
    PAYMENT = "PAYMENT"
    REFUND = "REFUND"
    CANCELLATION_REFUND = "CANCELLATION_REFUND"


class TransactionStatus(str, enum.Enum):
    COMPLETED = "COMPLETED"


class Wallet(Base):
    """One balance per user; ``balance`` always equals the sum of its transactions."""

    __tablename__ = "wallets"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False, index=True)
    balance = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    transactions = relationship(
        "WalletTransaction",
        back_populates="wallet",
        order_by="WalletTransaction.id",
    )


class WalletTransaction(Base):
    """Append-only ledger entry. Positive amounts credit, negative debit."""

    __tablename__ = "wallet_transactions"

    id = Column(Integer, primary_key=True, index=True)
    wallet_id = Column(Integer, ForeignKey("wallets.id"), nullable=False, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    type = Column(Enum(TransactionType, native_enum=False, length=32), nullable=False)
    description = Column(String, nullable=True)
    status = Column(
        Enum(TransactionStatus, native_enum=False, length=16),
        nullable=False,
        default=TransactionStatus.COMPLETED,
    )
    created_at = Column(DateTime, default=utcnow, server_default=func.now())

    wallet = relationship("Wallet", back_populates="transactions")
