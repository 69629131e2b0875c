from datetime import timedelta
from decimal import Decimal

import httpx
import pytest
from sqlalchemy import func, select

from app.core.clock import utcnow
from app.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InsufficientBalanceError,
    InvalidStateError,
    NotFoundError,
    PaymentFailure,
    PolicyViolationError,
    ValidationError,
)
from app.models import Booking, BookingParticipant, BookingStatus, ParticipantStatus
from app.schemas.booking import BookingUpdate, ParticipantCreate, PaymentMethod
from app.services.booking_service import booking_service, invite_link
from app.services.availability_service import availability_service
from app.services.payment_client import PaymentResult, payment_client
from app.services.scheduler import PendingBookingSweeper
from app.services.wallet_service import wallet_service

from helpers import at, fund_wallet, make_booking


def invitees(n):
    return [ParticipantCreate(name=f"Guest {i}", phone=f"0912000000{i}") for i in range(n)]


async def test_create_confirms_and_prices_booking(db, court, player, day, payment_ok):
    booking = await booking_service.create_booking(
        db, player, court.id, at(day, 19), at(day, 20), invitees(2)
    )

    assert booking.status == BookingStatus.CONFIRMED
    assert booking.total_price == Decimal("150000")
    assert booking.transaction_id == "txn_test"
    assert len(booking.invite_token) == 64
    payment_ok.assert_awaited_once_with(Decimal("150000.00"), str(booking.id))

    participants = (
        await db.execute(select(BookingParticipant).where(BookingParticipant.booking_id == booking.id))
    ).scalars().all()
    assert len(participants) == 2
    assert all(p.status == ParticipantStatus.PENDING for p in participants)


async def test_total_uses_rate_at_slot_start(db, court, player, day):
    booking = await booking_service.create_booking(
        db, player, court.id, at(day, 17), at(day, 19)
    )
    # Both hours billed at the 17:00 rate
    assert booking.total_price == Decimal("200000")


async def test_end_must_follow_start(db, court, player, day):
    with pytest.raises(ValidationError, match="End time must be after start time"):
        await booking_service.create_booking(db, player, court.id, at(day, 19), at(day, 19))


async def test_more_than_three_invitees_rejected(db, court, player, day):
    with pytest.raises(ValidationError, match="at most 3"):
        await booking_service.create_booking(
            db, player, court.id, at(day, 10), at(day, 11), invitees(4)
        )


async def test_unknown_court(db, users, player, day):
    with pytest.raises(NotFoundError):
        await booking_service.create_booking(db, player, 404, at(day, 10), at(day, 11))


async def test_user_cannot_hold_overlapping_bookings_across_courts(db, court, court_b, player, day):
    await booking_service.create_booking(db, player, court.id, at(day, 18), at(day, 19))

    with pytest.raises(ConflictError, match="another booking"):
        await booking_service.create_booking(
            db, player, court_b.id, at(day, 18, 30), at(day, 19, 30)
        )


async def test_taken_slot_is_rejected(db, court, player, friend, day):
    await booking_service.create_booking(db, player, court.id, at(day, 10), at(day, 11))

    with pytest.raises(ConflictError, match="not available"):
        await booking_service.create_booking(db, friend, court.id, at(day, 10, 30), at(day, 11, 30))


async def test_back_to_back_bookings_are_allowed(db, court, player, friend, day):
    await booking_service.create_booking(db, player, court.id, at(day, 10), at(day, 11))
    booking = await booking_service.create_booking(db, friend, court.id, at(day, 11), at(day, 12))
    assert booking.status == BookingStatus.CONFIRMED


async def test_failed_payment_leaves_cancelled_booking(db, court, player, day, payment_ok):
    payment_ok.return_value = PaymentResult(success=False, message="declined")

    with pytest.raises(PaymentFailure):
        await booking_service.create_booking(db, player, court.id, at(day, 10), at(day, 11))

    bookings = (await db.execute(select(Booking))).scalars().all()
    assert len(bookings) == 1
    assert bookings[0].status == BookingStatus.CANCELLED

    payment_ok.return_value = PaymentResult(success=True, transaction_id="txn_retry")
    assert await booking_service.create_booking(db, player, court.id, at(day, 10), at(day, 11))


async def test_wallet_payment_debits_balance(db, court, users, player, day, payment_ok):
    await fund_wallet(db, player.user_id, Decimal("120000"))

    booking = await booking_service.create_booking(
        db, player, court.id, at(day, 10), at(day, 11), payment_method=PaymentMethod.WALLET
    )

    assert booking.status == BookingStatus.CONFIRMED
    assert booking.transaction_id.startswith("wallet_")
    assert await wallet_service.get_balance(db, player.user_id) == Decimal("20000")
    payment_ok.assert_not_awaited()


async def test_wallet_payment_without_funds_cancels(db, court, users, player, day):
    with pytest.raises(InsufficientBalanceError):
        await booking_service.create_booking(
            db, player, court.id, at(day, 10), at(day, 11), payment_method=PaymentMethod.WALLET
        )

    booking = (await db.execute(select(Booking))).scalar_one()
    assert booking.status == BookingStatus.CANCELLED
    assert await wallet_service.get_balance(db, player.user_id) == Decimal("0")


async def test_list_includes_owned_and_invited_bookings(db, court, users, player, friend, day):
    early = await make_booking(db, player.user_id, court.id, at(day, 9))
    late = await make_booking(db, player.user_id, court.id, at(day, 20))
    theirs = await make_booking(db, friend.user_id, court.id, at(day, 12))
    db.add(BookingParticipant(booking_id=theirs.id, user_id=player.user_id))
    await make_booking(db, friend.user_id, court.id, at(day, 14))
    await db.commit()

    bookings = await booking_service.list_for_user(db, player)

    assert [b.id for b in bookings] == [late.id, theirs.id, early.id]
    assert bookings[0].is_owner
    assert not bookings[1].is_owner
    assert bookings[1].participants[0].is_user
    assert bookings[1].participants[0].name == "Sara"
    assert bookings[0].club_name == "Azadi Padel"
    assert bookings[0].city_name == "Tehran"


async def test_respond_to_invitation(db, court, users, player, friend, day):
    booking = await make_booking(db, player.user_id, court.id, at(day, 9))
    db.add(BookingParticipant(booking_id=booking.id, user_id=friend.user_id))
    await db.commit()

    participant = await booking_service.respond_to_invitation(db, friend, booking.id, accept=False)
    assert participant.status == ParticipantStatus.DECLINED

    with pytest.raises(NotFoundError, match="Invitation not found"):
        await booking_service.respond_to_invitation(db, player, booking.id, accept=True)


async def test_accept_invitation_by_token(db, court, users, player, friend, day):
    booking = await make_booking(db, player.user_id, court.id, at(day, 9), invite_token="tok")

    await booking_service.accept_invitation(db, friend, "tok")
    await booking_service.accept_invitation(db, friend, "tok")

    rows = (
        await db.execute(select(BookingParticipant).where(BookingParticipant.booking_id == booking.id))
    ).scalars().all()
    assert len(rows) == 1
    assert rows[0].user_id == friend.user_id
    assert rows[0].status == ParticipantStatus.ACCEPTED

    with pytest.raises(ValidationError):
        await booking_service.accept_invitation(db, player, "tok")
    with pytest.raises(NotFoundError):
        await booking_service.accept_invitation(db, friend, "nope")


def test_invite_link_format():
    assert invite_link("abc") == "http://localhost:3000/invite/abc"


async def test_only_owner_may_edit(db, court, users, player, friend, day):
    booking = await make_booking(db, player.user_id, court.id, at(day, 9))

    with pytest.raises(AuthorizationError):
        await booking_service.update_booking(db, friend, booking.id, BookingUpdate(action="cancel"))


async def test_only_confirmed_bookings_can_be_edited(db, court, users, player, day):
    booking = await make_booking(
        db, player.user_id, court.id, at(day, 9), status=BookingStatus.CANCELLATION_REQUESTED
    )

    with pytest.raises(InvalidStateError):
        await booking_service.update_booking(db, player, booking.id, BookingUpdate(action="cancel"))


async def test_fourth_participant_is_rejected(db, court, player, day):
    booking = await booking_service.create_booking(
        db, player, court.id, at(day, 10), at(day, 11), invitees(3)
    )

    update = BookingUpdate(action="add_participant", participant=ParticipantCreate(name="Fourth"))
    with pytest.raises(ValidationError, match="at most 3"):
        await booking_service.update_booking(db, player, booking.id, update)

    count = await db.scalar(
        select(func.count()).select_from(BookingParticipant).where(
            BookingParticipant.booking_id == booking.id
        )
    )
    assert count == 3


async def test_declined_participants_free_a_seat(db, court, player, day):
    booking = await booking_service.create_booking(
        db, player, court.id, at(day, 10), at(day, 11), invitees(3)
    )
    first = (
        await db.execute(select(BookingParticipant).where(BookingParticipant.booking_id == booking.id))
    ).scalars().first()
    first.status = ParticipantStatus.DECLINED
    await db.commit()

    message = await booking_service.update_booking(
        db,
        player,
        booking.id,
        BookingUpdate(action="add_participant", participant=ParticipantCreate(name="Fourth")),
    )
    assert message == "Invitation sent"


async def test_remove_participant(db, court, player, day):
    booking = await booking_service.create_booking(
        db, player, court.id, at(day, 10), at(day, 11), invitees(1)
    )
    participant_id = (
        await db.execute(select(BookingParticipant.id).where(BookingParticipant.booking_id == booking.id))
    ).scalar_one()

    await booking_service.update_booking(
        db, player, booking.id, BookingUpdate(action="remove_participant", participant_id=participant_id)
    )

    assert await db.get(BookingParticipant, participant_id) is None

    with pytest.raises(NotFoundError):
        await booking_service.update_booking(
            db, player, booking.id, BookingUpdate(action="remove_participant", participant_id=participant_id)
        )


async def test_change_time_keeps_price(db, court, player, day):
    booking = await booking_service.create_booking(db, player, court.id, at(day, 10), at(day, 11))

    await booking_service.update_booking(
        db,
        player,
        booking.id,
        BookingUpdate(action="change_time", start_time=at(day, 10, 30), end_time=at(day, 11, 30)),
        now=at(day, 10) - timedelta(hours=7),
    )

    moved = await db.get(Booking, booking.id)
    assert moved.start_time == at(day, 10, 30)
    assert moved.end_time == at(day, 11, 30)
    assert moved.total_price == Decimal("100000")


async def test_change_time_needs_six_hours_notice(db, court, player, day):
    booking = await booking_service.create_booking(db, player, court.id, at(day, 10), at(day, 11))

    with pytest.raises(PolicyViolationError, match="6 hours"):
        await booking_service.update_booking(
            db,
            player,
            booking.id,
            BookingUpdate(action="change_time", start_time=at(day, 14), end_time=at(day, 15)),
            now=at(day, 5),
        )


async def test_change_time_rechecks_slot_and_user(db, court, court_b, player, friend, day):
    booking = await booking_service.create_booking(db, player, court.id, at(day, 10), at(day, 11))
    await booking_service.create_booking(db, friend, court.id, at(day, 14), at(day, 15))
    await booking_service.create_booking(db, player, court_b.id, at(day, 16), at(day, 17))
    now = at(day, 0) - timedelta(days=1)

    with pytest.raises(ConflictError, match="not available"):
        await booking_service.update_booking(
            db, player, booking.id,
            BookingUpdate(action="change_time", start_time=at(day, 14), end_time=at(day, 15)),
            now=now,
        )

    with pytest.raises(ConflictError, match="another booking"):
        await booking_service.update_booking(
            db, player, booking.id,
            BookingUpdate(action="change_time", start_time=at(day, 16), end_time=at(day, 17)),
            now=now,
        )

    with pytest.raises(ValidationError):
        await booking_service.update_booking(
            db, player, booking.id,
            BookingUpdate(action="change_time", start_time=at(day, 18), end_time=at(day, 17)),
            now=now,
        )


async def test_owner_cancel_frees_slot(db, court, player, friend, day):
    booking = await booking_service.create_booking(db, player, court.id, at(day, 10), at(day, 11))

    message = await booking_service.update_booking(db, player, booking.id, BookingUpdate(action="cancel"))

    assert message == "Booking cancelled"
    assert (await db.get(Booking, booking.id)).status == BookingStatus.CANCELLED
    assert await booking_service.create_booking(db, friend, court.id, at(day, 10), at(day, 11))


async def test_list_all_bookings_is_admin_only(db, court, users, player, admin, day):
    await make_booking(db, player.user_id, court.id, at(day, 9))
    await make_booking(db, player.user_id, court.id, at(day, 11))

    with pytest.raises(AuthorizationError):
        await booking_service.list_all_bookings(db, player)

    bookings = await booking_service.list_all_bookings(db, admin)
    assert len(bookings) == 2
    assert bookings[0].user_name == "Sara Karimi"

    assert await booking_service.list_all_bookings(db, admin, start_date=day + timedelta(days=30)) == []


async def test_slot_is_held_while_payment_runs(db, session_factory, court, player, day, payment_ok):
    seen = {}

    async def gateway(amount, reference_id):
        async with session_factory() as other:
            seen["status"] = await other.scalar(
                select(Booking.status).where(Booking.id == int(reference_id))
            )
            seen["free"] = await availability_service.is_slot_available(
                other, court.id, at(day, 10), at(day, 11)
            )
        return PaymentResult(success=True, transaction_id="txn_test")

    payment_ok.side_effect = gateway

    booking = await booking_service.create_booking(db, player, court.id, at(day, 10), at(day, 11))

    assert seen == {"status": BookingStatus.PENDING, "free": False}
    assert booking.status == BookingStatus.CONFIRMED


async def test_interrupted_payment_is_swept(db, court, player, day, payment_ok):
    payment_ok.side_effect = RuntimeError("connection dropped")

    with pytest.raises(RuntimeError):
        await booking_service.create_booking(db, player, court.id, at(day, 10), at(day, 11))

    booking = (await db.execute(select(Booking))).scalar_one()
    assert booking.status == BookingStatus.PENDING

    swept = await PendingBookingSweeper().sweep(db, now=utcnow() + timedelta(minutes=20))

    assert swept == 1
    assert (await db.get(Booking, booking.id)).status == BookingStatus.CANCELLED


async def test_unreadable_gateway_answer_cancels_booking(db, court, player, day, monkeypatch):
    monkeypatch.delattr(payment_client, "initiate")
    monkeypatch.setattr(payment_client, "mock", False)
    monkeypatch.setattr(
        payment_client,
        "transport",
        httpx.MockTransport(lambda request: httpx.Response(200, text="<html>down</html>")),
    )

    with pytest.raises(PaymentFailure):
        await booking_service.create_booking(db, player, court.id, at(day, 10), at(day, 11))

    booking = (await db.execute(select(Booking))).scalar_one()
    assert booking.status == BookingStatus.CANCELLED


async def active_count(db, booking_id):
    return await db.scalar(
        select(func.count()).select_from(BookingParticipant).where(
            BookingParticipant.booking_id == booking_id,
            BookingParticipant.status.in_([ParticipantStatus.PENDING, ParticipantStatus.ACCEPTED]),
        )
    )


async def fill_after_decline(db, player, friend, court, day):
    """Friend joins then declines, and the owner fills the three seats."""
    booking = await booking_service.create_booking(db, player, court.id, at(day, 10), at(day, 11))
    await booking_service.accept_invitation(db, friend, booking.invite_token)
    await booking_service.respond_to_invitation(db, friend, booking.id, accept=False)
    for name in ("Ali", "Mina", "Nima"):
        await booking_service.update_booking(
            db,
            player,
            booking.id,
            BookingUpdate(action="add_participant", participant=ParticipantCreate(name=name)),
        )
    return booking


async def test_declined_invitee_cannot_accept_into_full_booking(db, court, users, player, friend, day):
    booking = await fill_after_decline(db, player, friend, court, day)

    with pytest.raises(ValidationError, match="at most 3"):
        await booking_service.respond_to_invitation(db, friend, booking.id, accept=True)

    assert await active_count(db, booking.id) == 3


async def test_declined_invitee_cannot_rejoin_full_booking_by_link(db, court, users, player, friend, day):
    booking = await fill_after_decline(db, player, friend, court, day)

    with pytest.raises(ValidationError, match="at most 3"):
        await booking_service.accept_invitation(db, friend, booking.invite_token)

    assert await active_count(db, booking.id) == 3


async def test_accepting_again_keeps_an_existing_seat(db, court, users, player, friend, day):
    booking = await booking_service.create_booking(
        db, player, court.id, at(day, 10), at(day, 11), invitees(2)
    )
    await booking_service.accept_invitation(db, friend, booking.invite_token)

    participant = await booking_service.respond_to_invitation(db, friend, booking.id, accept=True)

    assert participant.status == ParticipantStatus.ACCEPTED
    assert await active_count(db, booking.id) == 3
