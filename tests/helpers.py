"""Test data builders."""
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from app.models import Booking, BookingStatus, Wallet
from app.services.wallet_service import wallet_service


def at(day: date, hour: int, minute: int = 0) -> datetime:
    """Naive UTC instant on ``day`` (tests run with TIMEZONE=UTC)."""
    return datetime.combine(day, time(hour, minute))


async def make_booking(
    db,
    user_id: int,
    court_id: int,
    start: datetime,
    hours: float = 1,
    status: BookingStatus = BookingStatus.CONFIRMED,
    total_price=Decimal("100000"),
    invite_token=None,
) -> Booking:
    booking = Booking(
        user_id=user_id,
        court_id=court_id,
        start_time=start,
        end_time=start + timedelta(hours=hours),
        total_price=total_price,
        status=status,
        invite_token=invite_token,
    )
    db.add(booking)
    await db.commit()
    return booking


async def fund_wallet(db, user_id: int, amount) -> Wallet:
    await wallet_service.charge(db, user_id, amount)
    await db.commit()
    return await wallet_service.get_or_create_wallet(db, user_id)
