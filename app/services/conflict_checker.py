"""Per-user exclusivity: a user cannot hold two overlapping bookings."""
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.booking import Booking
from app.services.availability_service import OCCUPYING_STATUSES, overlaps


async def has_conflicting_booking(
    db: AsyncSession,
    user_id: int,
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[int] = None,
) -> bool:
    """
    Check whether the user owns another pending or confirmed booking overlapping [start, end).

    Courts are ignored: the check spans every court in the system.

    Args:
        db: Database session
        user_id: Booking owner
        start: Candidate start (UTC)
        end: Candidate end (UTC)
        exclude_booking_id: Booking being moved, if rescheduling

    Returns:
        True if a conflicting booking exists
    """
    query = select(Booking.id).where(
        Booking.user_id == user_id,
        Booking.status.in_(OCCUPYING_STATUSES),
        overlaps(start, end),
    )
    if exclude_booking_id is not None:
        query = query.where(Booking.id != exclude_booking_id)

    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none() is not None
