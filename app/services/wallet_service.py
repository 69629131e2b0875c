"""Wallet ledger.

Every mutation appends exactly one signed ``WalletTransaction`` and moves the
cached balance by the same amount, under a row lock on the wallet. Ledger
methods flush but never commit: they join the caller's transaction so that
multi-leg movements (the cancellation refund transfer) commit or roll back
as one unit.
"""
import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import InsufficientBalanceError, PaymentFailure, ValidationError
from app.models.wallet import Wallet, WalletTransaction, TransactionType, TransactionStatus
from app.services.payment_client import payment_client
from app.services.pricing import quantize_money

logger = logging.getLogger(__name__)


class WalletService:
    """Service for wallet balances and ledger entries."""

    async def get_or_create_wallet(
        self,
        db: AsyncSession,
        user_id: int,
        for_update: bool = False,
    ) -> Wallet:
        """Fetch the user's wallet, creating an empty one on first access."""
        query = select(Wallet).where(Wallet.user_id == user_id)
        if for_update:
            query = query.with_for_update()

        result = await db.execute(query)
        wallet = result.scalar_one_or_none()

        if not wallet:
            wallet = Wallet(user_id=user_id, balance=Decimal("0"))
            db.add(wallet)
            await db.flush()
            logger.info(f"Created wallet {wallet.id} for user {user_id}")

        return wallet

    async def _post(
        self,
        db: AsyncSession,
        wallet: Wallet,
        amount: Decimal,
        tx_type: TransactionType,
        booking_id: Optional[int],
        description: Optional[str],
    ) -> WalletTransaction:
        transaction = WalletTransaction(
            wallet_id=wallet.id,
            booking_id=booking_id,
            amount=amount,
            type=tx_type,
            description=description,
            status=TransactionStatus.COMPLETED,
        )
        db.add(transaction)
        wallet.balance = quantize_money(Decimal(wallet.balance) + amount)
        await db.flush()

        logger.info(
            f"Wallet {wallet.id} (user {wallet.user_id}): {tx_type.value} {amount:+} "
            f"-> balance {wallet.balance}"
        )
        return transaction

    async def _credit(
        self,
        db: AsyncSession,
        user_id: int,
        amount,
        tx_type: TransactionType,
        booking_id: Optional[int],
        description: Optional[str],
    ) -> WalletTransaction:
        amount = _positive_amount(amount)
        wallet = await self.get_or_create_wallet(db, user_id, for_update=True)
        return await self._post(db, wallet, amount, tx_type, booking_id, description)

    async def _debit(
        self,
        db: AsyncSession,
        user_id: int,
        amount,
        tx_type: TransactionType,
        booking_id: Optional[int],
        description: Optional[str],
        insufficient_message: str,
    ) -> WalletTransaction:
        amount = _positive_amount(amount)
        wallet = await self.get_or_create_wallet(db, user_id, for_update=True)

        if Decimal(wallet.balance) < amount:
            logger.warning(
                f"Wallet {wallet.id} (user {user_id}): balance {wallet.balance} "
                f"below requested {amount}"
            )
            raise InsufficientBalanceError(insufficient_message)

        return await self._post(db, wallet, -amount, tx_type, booking_id, description)

    async def charge(
        self,
        db: AsyncSession,
        user_id: int,
        amount,
        description: Optional[str] = None,
    ) -> WalletTransaction:
        """Unconditional credit from an external top-up."""
        return await self._credit(
            db,
            user_id,
            amount,
            TransactionType.CHARGE,
            None,
            description or f"Wallet top-up of {amount}",
        )

    async def pay_from_wallet(
        self,
        db: AsyncSession,
        user_id: int,
        amount,
        booking_id: int,
    ) -> WalletTransaction:
        """Debit a booking payment from the user's wallet."""
        return await self._debit(
            db,
            user_id,
            amount,
            TransactionType.PAYMENT,
            booking_id,
            f"Payment for booking {booking_id}",
            "Insufficient wallet balance",
        )

    async def refund_to_wallet(
        self,
        db: AsyncSession,
        user_id: int,
        amount,
        booking_id: int,
        description: Optional[str] = None,
    ) -> WalletTransaction:
        """Unconditional credit of a cancellation refund to a player."""
        return await self._credit(
            db,
            user_id,
            amount,
            TransactionType.CANCELLATION_REFUND,
            booking_id,
            description or f"Cancellation refund for booking {booking_id}",
        )

    async def deduct_from_field_owner_wallet(
        self,
        db: AsyncSession,
        field_owner_id: int,
        amount,
        booking_id: int,
        description: Optional[str] = None,
    ) -> WalletTransaction:
        """Debit the refund source from the court owner's wallet."""
        return await self._debit(
            db,
            field_owner_id,
            amount,
            TransactionType.REFUND,
            booking_id,
            description or f"Refund paid out for booking {booking_id}",
            "Field owner wallet balance is insufficient for this refund",
        )

    async def transfer_refund(
        self,
        db: AsyncSession,
        field_owner_id: int,
        player_id: int,
        amount,
        booking_id: int,
        description: Optional[str] = None,
    ) -> Tuple[WalletTransaction, WalletTransaction]:
        """
        Move a refund from the field owner's wallet to the player's wallet.

        Both wallets are locked up front in user-id order. Nothing is
        committed here; if the debit fails the caller rolls back and neither
        wallet changes.

        Returns:
            The (debit, credit) transaction pair
        """
        for user_id in sorted({field_owner_id, player_id}):
            await self.get_or_create_wallet(db, user_id, for_update=True)

        debit = await self.deduct_from_field_owner_wallet(
            db, field_owner_id, amount, booking_id, description
        )
        credit = await self.refund_to_wallet(
            db, player_id, amount, booking_id, description
        )
        return debit, credit

    async def get_balance(self, db: AsyncSession, user_id: int) -> Decimal:
        wallet = await self.get_or_create_wallet(db, user_id)
        await db.commit()
        return Decimal(wallet.balance)

    async def charge_wallet(
        self,
        db: AsyncSession,
        user_id: int,
        amount,
    ) -> Tuple[WalletTransaction, str]:
        """
        Top up a wallet through the payment gateway.

        Returns:
            The CHARGE transaction and the gateway transaction id

        Raises:
            ValidationError: If the amount is below the minimum top-up
            PaymentFailure: If the gateway declines
        """
        amount = Decimal(str(amount))
        if amount < settings.MIN_WALLET_CHARGE:
            raise ValidationError(
                f"Minimum top-up amount is {settings.MIN_WALLET_CHARGE}"
            )

        payment = await payment_client.initiate(amount, "wallet-charge")
        if not payment.success:
            raise PaymentFailure("Payment failed")

        transaction = await self.charge(db, user_id, amount)
        await db.commit()
        return transaction, payment.transaction_id

    async def list_transactions(
        self,
        db: AsyncSession,
        user_id: int,
        limit: int = 50,
    ) -> List[WalletTransaction]:
        """Most recent ledger entries, newest first."""
        result = await db.execute(
            select(WalletTransaction)
            .join(Wallet, Wallet.id == WalletTransaction.wallet_id)
            .where(Wallet.user_id == user_id)
            .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())


def _positive_amount(amount) -> Decimal:
    value = quantize_money(Decimal(str(amount)))
    if value <= 0:
        raise ValidationError("Amount must be positive")
    return value


# Singleton instance
wallet_service = WalletService()
