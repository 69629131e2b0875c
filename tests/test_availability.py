from datetime import timedelta
from decimal import Decimal

import pytest

from app.core.exceptions import NotFoundError
from app.models import BookingStatus
from app.services.availability_service import availability_service
from app.services.conflict_checker import has_conflicting_booking

from helpers import at, make_booking


async def test_slots_cover_operating_hours(db, court, day):
    slots = await availability_service.get_available_slots(db, court.id, day)

    assert len(slots) == 15
    assert slots[0].start == at(day, 8)
    assert slots[-1].end == at(day, 23)
    assert [s.local_time for s in slots[:2]] == ["08:00", "09:00"]
    assert all(s.end - s.start == timedelta(hours=1) for s in slots)
    assert all(s.available for s in slots)


async def test_slots_are_priced_by_rules(db, court, day):
    slots = {s.local_time: s for s in await availability_service.get_available_slots(db, court.id, day)}

    assert slots["10:00"].price == Decimal("100000")
    assert slots["19:00"].price == Decimal("150000")
    assert slots["17:00"].price == Decimal("100000")


async def test_confirmed_booking_blocks_overlapping_slots(db, court, users, day):
    await make_booking(db, users["player"].id, court.id, at(day, 10, 30), hours=1)

    slots = {s.local_time: s for s in await availability_service.get_available_slots(db, court.id, day)}

    assert not slots["10:00"].available
    assert not slots["11:00"].available
    assert slots["09:00"].available
    assert slots["12:00"].available


async def test_cancelled_bookings_do_not_block(db, court, users, day):
    for status in (
        BookingStatus.CANCELLED,
        BookingStatus.CANCELLATION_VERIFIED,
        BookingStatus.CANCELLATION_REJECTED,
    ):
        await make_booking(db, users["player"].id, court.id, at(day, 12), status=status)

    slots = {s.local_time: s for s in await availability_service.get_available_slots(db, court.id, day)}
    assert slots["12:00"].available


async def test_pending_booking_holds_its_slot(db, court, users, day):
    await make_booking(db, users["player"].id, court.id, at(day, 12), status=BookingStatus.PENDING)

    slots = {s.local_time: s for s in await availability_service.get_available_slots(db, court.id, day)}

    assert not slots["12:00"].available
    assert not await availability_service.is_slot_available(db, court.id, at(day, 12), at(day, 13))
    assert await has_conflicting_booking(db, users["player"].id, at(day, 12), at(day, 13))


async def test_booking_on_another_court_does_not_block(db, court, court_b, users, day):
    await make_booking(db, users["player"].id, court_b.id, at(day, 9))

    slots = await availability_service.get_available_slots(db, court.id, day)
    assert slots[1].available


async def test_unknown_court_is_not_found(db, day):
    with pytest.raises(NotFoundError):
        await availability_service.get_available_slots(db, 999, day)


async def test_slot_check_uses_half_open_intervals(db, court, users, day):
    booking = await make_booking(db, users["player"].id, court.id, at(day, 10))

    assert await availability_service.is_slot_available(db, court.id, at(day, 11), at(day, 12))
    assert await availability_service.is_slot_available(db, court.id, at(day, 9), at(day, 10))
    assert not await availability_service.is_slot_available(
        db, court.id, at(day, 10, 30), at(day, 11, 30)
    )
    assert await availability_service.is_slot_available(
        db, court.id, at(day, 10, 30), at(day, 11, 30), exclude_booking_id=booking.id
    )


async def test_conflict_checker_spans_courts(db, court, court_b, users, day):
    await make_booking(db, users["player"].id, court.id, at(day, 18))

    assert await has_conflicting_booking(db, users["player"].id, at(day, 18, 30), at(day, 19, 30))
    assert not await has_conflicting_booking(db, users["friend"].id, at(day, 18, 30), at(day, 19, 30))
    assert not await has_conflicting_booking(db, users["player"].id, at(day, 19), at(day, 20))


async def test_conflict_checker_excludes_given_booking(db, court, users, day):
    booking = await make_booking(db, users["player"].id, court.id, at(day, 18))

    assert not await has_conflicting_booking(
        db, users["player"].id, at(day, 18), at(day, 19), exclude_booking_id=booking.id
    )
