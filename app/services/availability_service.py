"""Court availability: the hourly slot grid for a day, priced and marked free/taken."""
import logging
from datetime import date, datetime, time as dt_time, timedelta
from typing import List, Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.clock import local_day_bounds, local_to_utc, to_local
from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.models.booking import Booking, BookingStatus
from app.models.court import Court
from app.schemas.availability import AvailabilitySlot
from app.services.pricing import slot_price

logger = logging.getLogger(__name__)


# A PENDING booking holds its slot while its payment is in flight
OCCUPYING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)


def overlaps(start: datetime, end: datetime):
    """SQL predicate: booking interval overlaps the half-open [start, end)."""
    return and_(Booking.start_time < end, Booking.end_time > start)


class AvailabilityService:
    """Service for computing court availability."""

    async def get_court(
        self,
        db: AsyncSession,
        court_id: int,
        for_update: bool = False,
    ) -> Court:
        """
        Load a court with its pricing rules and cancellation policy.

        Args:
            db: Database session
            court_id: Court ID
            for_update: Lock the court row until the transaction ends

        Raises:
            NotFoundError: If the court does not exist
        """
        query = (
            select(Court)
            .where(Court.id == court_id)
            .options(
                selectinload(Court.pricing_rules),
                selectinload(Court.cancellation_policy),
            )
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()

        result = await db.execute(query)
        court = result.scalar_one_or_none()

        if not court:
            raise NotFoundError("Court not found")

        return court

    async def get_available_slots(
        self,
        db: AsyncSession,
        court_id: int,
        target_date: date,
    ) -> List[AvailabilitySlot]:
        """
        Enumerate the day's slots within operating hours.

        Args:
            db: Database session
            court_id: Court ID
            target_date: Calendar date in the service time zone

        Returns:
            Slots in start order, each with availability and price
        """
        court = await self.get_court(db, court_id)

        day_start, day_end = local_day_bounds(target_date)
        result = await db.execute(
            select(Booking).where(
                Booking.court_id == court_id,
                Booking.status.in_(OCCUPYING_STATUSES),
                overlaps(day_start, day_end),
            )
        )
        bookings = result.scalars().all()

        slot_length = timedelta(minutes=settings.SLOT_DURATION_MINUTES)
        slots = []

        for hour in range(settings.OPERATING_HOURS_START, settings.OPERATING_HOURS_END):
            slot_start = local_to_utc(target_date, dt_time(hour=hour))
            slot_end = slot_start + slot_length

            blocked = any(
                slot_start < booking.end_time and slot_end > booking.start_time
                for booking in bookings
            )

            slots.append(
                AvailabilitySlot(
                    start=slot_start,
                    end=slot_end,
                    local_time=f"{hour:02d}:00",
                    available=not blocked,
                    price=slot_price(
                        court.base_price_per_hour,
                        court.pricing_rules,
                        to_local(slot_start),
                    ),
                )
            )

        logger.debug(
            f"Court {court_id} on {target_date}: "
            f"{sum(1 for s in slots if s.available)}/{len(slots)} slots free"
        )
        return slots

    async def is_slot_available(
        self,
        db: AsyncSession,
        court_id: int,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[int] = None,
    ) -> bool:
        """Whether no other pending or confirmed booking on the court overlaps [start, end)."""
        query = select(Booking.id).where(
            Booking.court_id == court_id,
            Booking.status.in_(OCCUPYING_STATUSES),
            overlaps(start, end),
        )
        if exclude_booking_id is not None:
            query = query.where(Booking.id != exclude_booking_id)

        result = await db.execute(query.limit(1))
        return result.scalar_one_or_none() is None


# Singleton instance
availability_service = AvailabilityService()
