"""Cancellation policies and the request/verify refund flow."""
import logging
from datetime import date, datetime, time as dt_time
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.clock import hours_between, utcnow
from app.core.exceptions import (
    AuthorizationError,
    InsufficientBalanceError,
    NotFoundError,
    PolicyViolationError,
    ValidationError,
)
from app.core.security import Caller, Role
from app.models.booking import Booking, BookingStatus
from app.models.cancellation_policy import CancellationPolicy
from app.models.court import Court
from app.schemas.cancellation import CancellationRequestSummary
from app.services.availability_service import availability_service
from app.services.booking_state import BookingEvent, apply_transition, next_status
from app.services.pricing import quantize_money
from app.services.wallet_service import wallet_service

logger = logging.getLogger(__name__)


def refund_amount(total_price, refund_percentage: int) -> Decimal:
    """Refund owed for a booking under a policy's percentage."""
    return quantize_money(Decimal(str(total_price)) * Decimal(refund_percentage) / Decimal(100))


class CancellationService:
    """Service for cancellation policies and verified cancellations."""

    async def set_policy(
        self,
        db: AsyncSession,
        caller: Caller,
        court_id: int,
        hours_before_start: int,
        refund_percentage: int,
        description: Optional[str] = None,
    ) -> CancellationPolicy:
        """
        Create or replace the court's cancellation policy.

        Args:
            db: Database session
            caller: Court owner or admin
            court_id: Court ID
            hours_before_start: Minimum lead time to request cancellation
            refund_percentage: Share of the total refunded, 0-100
            description: Optional text shown to players

        Returns:
            The stored policy
        """
        if hours_before_start < 0:
            raise ValidationError("Hours before start must not be negative")
        if not 0 <= refund_percentage <= 100:
            raise ValidationError("Refund percentage must be between 0 and 100")

        court = await availability_service.get_court(db, court_id)

        if court.owner_id != caller.user_id and not caller.is_admin:
            raise AuthorizationError(
                "You are not allowed to set the cancellation policy for this court"
            )

        policy = court.cancellation_policy
        if policy is None:
            policy = CancellationPolicy()
            court.cancellation_policy = policy

        policy.hours_before_start = hours_before_start
        policy.refund_percentage = refund_percentage
        policy.description = description or None

        await db.commit()
        await db.refresh(policy)

        logger.info(
            f"Court {court_id}: cancellation policy {hours_before_start}h / "
            f"{refund_percentage}% set by user {caller.user_id}"
        )
        return policy

    async def get_policy(self, db: AsyncSession, court_id: int) -> CancellationPolicy:
        result = await db.execute(
            select(CancellationPolicy).where(CancellationPolicy.court_id == court_id)
        )
        policy = result.scalar_one_or_none()

        if not policy:
            raise NotFoundError("No cancellation policy is set for this court")

        return policy

    async def _get_booking_with_court(
        self,
        db: AsyncSession,
        booking_id: int,
        for_update: bool = False,
    ) -> Booking:
        query = (
            select(Booking)
            .where(Booking.id == booking_id)
            .options(selectinload(Booking.court).selectinload(Court.cancellation_policy))
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)

        result = await db.execute(query)
        booking = result.scalar_one_or_none()

        if not booking:
            raise NotFoundError("Booking not found")

        return booking

    async def request_cancellation(
        self,
        db: AsyncSession,
        caller: Caller,
        booking_id: int,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Booking:
        """
        Ask the field owner to cancel a confirmed booking.

        Allowed only while at least ``hours_before_start`` hours remain
        before the booking starts.

        Raises:
            AuthorizationError: Caller does not own the booking
            InvalidStateError: Booking is not confirmed
            PolicyViolationError: No policy, or requested too late
        """
        now = now or utcnow()
        booking = await self._get_booking_with_court(db, booking_id, for_update=True)

        if booking.user_id != caller.user_id:
            raise AuthorizationError("You are not allowed to cancel this booking")

        next_status(booking.status, BookingEvent.REQUEST_CANCELLATION)

        policy = booking.court.cancellation_policy
        if not policy:
            raise PolicyViolationError("No cancellation policy is set for this court")

        if hours_between(now, booking.start_time) < policy.hours_before_start:
            logger.warning(
                f"Booking {booking.id}: cancellation requested inside the "
                f"{policy.hours_before_start}h window"
            )
            raise PolicyViolationError(
                f"Cancellation must be requested at least {policy.hours_before_start} "
                f"hours before the start time"
            )

        apply_transition(booking, BookingEvent.REQUEST_CANCELLATION, now)
        booking.cancellation_reason = reason or None
        await db.commit()

        return booking

    async def verify_cancellation(
        self,
        db: AsyncSession,
        caller: Caller,
        booking_id: int,
        approve: bool,
        now: Optional[datetime] = None,
    ) -> Tuple[Booking, Decimal]:
        """
        Approve or reject a pending cancellation request.

        Only the court's own field owner may decide; admins can list requests
        but not verify them. Approval moves the refund from the owner's
        wallet to the player's wallet in the same transaction as the status
        change, so either all three writes land or none do.

        Returns:
            The booking and the refunded amount (zero when rejected)
        """
        now = now or utcnow()
        booking = await self._get_booking_with_court(db, booking_id, for_update=True)
        court = booking.court

        if court.owner_id is None:
            raise ValidationError(
                "This court has no owner. Only courts with an owner can process "
                "cancellations and refunds"
            )

        if court.owner_id != caller.user_id:
            raise AuthorizationError("Only the field owner can verify cancellations")

        if not approve:
            apply_transition(booking, BookingEvent.REJECT_CANCELLATION, now)
            await db.commit()
            return booking, Decimal("0")

        next_status(booking.status, BookingEvent.APPROVE_CANCELLATION)

        policy = court.cancellation_policy
        if not policy:
            raise NotFoundError("Cancellation policy not found")

        amount = refund_amount(booking.total_price, policy.refund_percentage)
        description = f"Cancellation refund for booking {booking.id} - {policy.refund_percentage}%"

        try:
            if amount > 0:
                await wallet_service.transfer_refund(
                    db,
                    field_owner_id=court.owner_id,
                    player_id=booking.user_id,
                    amount=amount,
                    booking_id=booking.id,
                    description=description,
                )
            apply_transition(booking, BookingEvent.APPROVE_CANCELLATION, now)
            await db.commit()
        except InsufficientBalanceError:
            await db.rollback()
            raise

        logger.info(
            f"Booking {booking.id}: refunded {amount} from user {court.owner_id} "
            f"to user {booking.user_id}"
        )
        return booking, amount

    async def list_cancellation_requests(
        self,
        db: AsyncSession,
        caller: Caller,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[CancellationRequestSummary]:
        """
        Pending cancellation requests visible to the caller.

        Field owners see requests on their own courts; admins see all.
        """
        if caller.role not in (Role.FIELD_OWNER, Role.ADMIN):
            raise AuthorizationError("You do not have access to this section")

        query = (
            select(Booking)
            .join(Court, Court.id == Booking.court_id)
            .where(Booking.status == BookingStatus.CANCELLATION_REQUESTED)
            .options(
                selectinload(Booking.user),
                selectinload(Booking.court).selectinload(Court.cancellation_policy),
            )
        )
        if not caller.is_admin:
            query = query.where(Court.owner_id == caller.user_id)
        if start_date:
            query = query.where(
                Booking.cancellation_requested_at >= datetime.combine(start_date, dt_time.min)
            )
        if end_date:
            query = query.where(
                Booking.cancellation_requested_at <= datetime.combine(end_date, dt_time.max)
            )

        result = await db.execute(
            query.order_by(Booking.cancellation_requested_at.desc(), Booking.id.desc())
            .execution_options(populate_existing=True)
        )

        requests = []
        for booking in result.scalars().all():
            policy = booking.court.cancellation_policy
            requests.append(
                CancellationRequestSummary(
                    id=booking.id,
                    user_name=booking.user.display_name,
                    user_email=booking.user.email,
                    court_id=booking.court_id,
                    court_name=booking.court.name,
                    start_time=booking.start_time,
                    end_time=booking.end_time,
                    total_price=Decimal(booking.total_price),
                    refund_amount=(
                        refund_amount(booking.total_price, policy.refund_percentage)
                        if policy
                        else Decimal("0")
                    ),
                    cancellation_reason=booking.cancellation_reason,
                    requested_at=booking.cancellation_requested_at,
                )
            )

        return requests


# Singleton instance
cancellation_service = CancellationService()
