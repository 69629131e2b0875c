"""Background scheduler for reconciling stale bookings."""
import logging
from datetime import datetime, timedelta
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import utcnow
from app.core.config import settings
from app.core.database import AsyncSessionLocal
from app.models.booking import Booking, BookingStatus
from app.services.booking_state import BookingEvent, apply_transition

logger = logging.getLogger(__name__)


class PendingBookingSweeper:
    """
    Periodically cancels bookings stuck in PENDING.

    A booking is PENDING only while its payment is in flight. One that is
    still PENDING after ``PENDING_BOOKING_TTL_MINUTES`` was left behind by an
    interrupted request and is moved to CANCELLED.
    """

    def __init__(self):
        """Initialize the scheduler."""
        self.scheduler = AsyncIOScheduler()
        self.running = False

    async def start(self):
        """Start the scheduler."""
        if self.running:
            logger.warning("Scheduler is already running")
            return

        logger.info("Starting pending booking sweeper")

        self.scheduler.add_job(
            self._run_sweep,
            IntervalTrigger(minutes=settings.SWEEP_INTERVAL_MINUTES),
            id="pending_booking_sweep",
            name="Cancel stale pending bookings",
            replace_existing=True,
        )

        self.scheduler.start()
        self.running = True
        logger.info("Pending booking sweeper started")

    async def stop(self):
        """Stop the scheduler."""
        if not self.running:
            return

        logger.info("Stopping pending booking sweeper")
        self.scheduler.shutdown(wait=False)
        self.running = False
        logger.info("Pending booking sweeper stopped")

    async def _run_sweep(self):
        async with AsyncSessionLocal() as db:
            try:
                await self.sweep(db)
            except Exception as e:
                logger.error(f"Error in pending booking sweep: {e}", exc_info=True)
                await db.rollback()

    async def sweep(self, db: AsyncSession, now: Optional[datetime] = None) -> int:
        """
        Cancel PENDING bookings created before the TTL cutoff.

        Args:
            db: Database session
            now: Reference time (UTC), defaults to the current time

        Returns:
            Number of bookings cancelled
        """
        now = now or utcnow()
        cutoff = now - timedelta(minutes=settings.PENDING_BOOKING_TTL_MINUTES)

        result = await db.execute(
            select(Booking)
            .where(
                Booking.status == BookingStatus.PENDING,
                Booking.created_at < cutoff,
            )
            .with_for_update(skip_locked=True)
        )
        stale = result.scalars().all()

        for booking in stale:
            apply_transition(booking, BookingEvent.EXPIRED, now)

        await db.commit()

        if stale:
            logger.info(f"Cancelled {len(stale)} stale pending bookings")
        else:
            logger.debug("No stale pending bookings")

        return len(stale)


# Singleton instance
pending_booking_sweeper = PendingBookingSweeper()
