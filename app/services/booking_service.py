"""Booking lifecycle: creation, participants, rescheduling and owner cancellation."""
import logging
import secrets
from datetime import date, datetime, time as dt_time
from decimal import Decimal
from typing import List, Optional, Sequence

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.clock import hours_between, to_local, to_utc_naive, utcnow
from app.core.config import settings
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
from app.core.security import Caller
from app.models.booking import Booking, BookingParticipant, BookingStatus, ParticipantStatus
from app.models.club import SportsClub
from app.models.court import Court
from app.schemas.booking import (
    AdminBookingSummary,
    BookingDetail,
    BookingUpdate,
    ParticipantCreate,
    ParticipantInDB,
    PaymentMethod,
    PersonSummary,
)
from app.services.availability_service import availability_service
from app.services.booking_state import BookingEvent, apply_transition, require_editable
from app.services.conflict_checker import has_conflicting_booking
from app.services.payment_client import payment_client
from app.services.pricing import booking_total, slot_price
from app.services.wallet_service import wallet_service

logger = logging.getLogger(__name__)

ACTIVE_PARTICIPANT_STATUSES = (ParticipantStatus.PENDING, ParticipantStatus.ACCEPTED)


def generate_invite_token() -> str:
    return secrets.token_hex(32)


def invite_link(token: str) -> str:
    return f"{settings.INVITE_BASE_URL.rstrip('/')}/invite/{token}"


def count_active_participants(booking: Booking) -> int:
    return sum(1 for p in booking.participants if p.status in ACTIVE_PARTICIPANT_STATUSES)


def _participant_cap_message() -> str:
    return f"You can invite at most {settings.MAX_PARTICIPANTS} players"


def _validate_interval(start: datetime, end: datetime):
    if start >= end:
        raise ValidationError("End time must be after start time")


def _ensure_seat_for(booking: Booking, participant: BookingParticipant):
    """Raise if activating ``participant`` would push the booking past the cap."""
    if participant.status in ACTIVE_PARTICIPANT_STATUSES:
        return
    if count_active_participants(booking) >= settings.MAX_PARTICIPANTS:
        raise ValidationError(_participant_cap_message())


class BookingService:
    """Service for the booking lifecycle."""

    async def _get_booking(
        self,
        db: AsyncSession,
        booking_id: int,
        for_update: bool = False,
    ) -> Booking:
        query = (
            select(Booking)
            .where(Booking.id == booking_id)
            .options(selectinload(Booking.participants))
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)

        result = await db.execute(query)
        booking = result.scalar_one_or_none()

        if not booking:
            raise NotFoundError("Booking not found")

        return booking

    async def create_booking(
        self,
        db: AsyncSession,
        caller: Caller,
        court_id: int,
        start_time: datetime,
        end_time: datetime,
        participants: Sequence[ParticipantCreate] = (),
        payment_method: PaymentMethod = PaymentMethod.GATEWAY,
    ) -> Booking:
        """
        Book a court for [start_time, end_time) and settle payment.

        The court row and the caller's wallet row stay locked while the
        slot and the caller's calendar are checked, so concurrent requests for
        the same court or by the same user are checked one at a time. The
        booking is committed as PENDING before payment starts; a PENDING
        booking already holds its slot. It ends CONFIRMED, or CANCELLED when
        payment fails. A request that dies mid-payment leaves it PENDING for
        the pending booking sweeper.

        Args:
            db: Database session
            caller: Booking owner
            court_id: Court to book
            start_time: Start instant
            end_time: End instant
            participants: Named invitees (at most MAX_PARTICIPANTS)
            payment_method: Gateway or wallet

        Returns:
            The confirmed booking

        Raises:
            ValidationError: Bad interval or too many participants
            ConflictError: Slot taken or caller already booked at this time
            NotFoundError: Unknown court
            PaymentFailure / InsufficientBalanceError: Payment was not settled
        """
        start_time = to_utc_naive(start_time)
        end_time = to_utc_naive(end_time)
        _validate_interval(start_time, end_time)

        if len(participants) > settings.MAX_PARTICIPANTS:
            raise ValidationError(_participant_cap_message())

        court = await availability_service.get_court(db, court_id, for_update=True)
        await wallet_service.get_or_create_wallet(db, caller.user_id, for_update=True)

        if await has_conflicting_booking(db, caller.user_id, start_time, end_time):
            raise ConflictError("You already have another booking at this time")

        if not await availability_service.is_slot_available(db, court_id, start_time, end_time):
            raise ConflictError("This time slot is not available")

        price_per_hour = slot_price(
            court.base_price_per_hour, court.pricing_rules, to_local(start_time)
        )
        total_price = booking_total(price_per_hour, hours_between(start_time, end_time))

        booking = Booking(
            user_id=caller.user_id,
            court_id=court.id,
            start_time=start_time,
            end_time=end_time,
            total_price=total_price,
            status=BookingStatus.PENDING,
            invite_token=generate_invite_token(),
            participants=[
                BookingParticipant(
                    name=participant.name,
                    email=participant.email,
                    phone=participant.phone,
                    gender=participant.gender,
                    status=ParticipantStatus.PENDING,
                )
                for participant in participants
            ],
        )
        db.add(booking)
        await db.commit()

        logger.info(
            f"Booking {booking.id}: user {caller.user_id} court {court_id} "
            f"{start_time}-{end_time} total {total_price} via {payment_method.value}"
        )

        failure: Optional[Exception] = None
        transaction_id = None

        if payment_method == PaymentMethod.WALLET:
            try:
                transaction = await wallet_service.pay_from_wallet(
                    db, caller.user_id, total_price, booking.id
                )
                transaction_id = f"wallet_{transaction.id}"
            except InsufficientBalanceError as e:
                failure = e
        else:
            payment = await payment_client.initiate(total_price, str(booking.id))
            if payment.success:
                transaction_id = payment.transaction_id
            else:
                failure = PaymentFailure("Payment failed")

        booking = await self._get_booking(db, booking.id, for_update=True)

        if failure is not None:
            apply_transition(booking, BookingEvent.PAYMENT_FAILED, utcnow())
            await db.commit()
            logger.warning(f"Booking {booking.id}: payment not settled ({failure})")
            raise failure

        booking.transaction_id = transaction_id
        apply_transition(booking, BookingEvent.PAYMENT_CONFIRMED, utcnow())
        await db.commit()

        return booking

    async def list_for_user(self, db: AsyncSession, caller: Caller) -> List[BookingDetail]:
        """Bookings the caller owns or is linked to as a participant, newest start first."""
        participant_booking_ids = select(BookingParticipant.booking_id).where(
            BookingParticipant.user_id == caller.user_id
        )
        result = await db.execute(
            select(Booking)
            .where(
                or_(
                    Booking.user_id == caller.user_id,
                    Booking.id.in_(participant_booking_ids),
                )
            )
            .options(
                selectinload(Booking.court).selectinload(Court.club).selectinload(SportsClub.city),
                selectinload(Booking.user),
                selectinload(Booking.participants).selectinload(BookingParticipant.user),
            )
            .order_by(Booking.start_time.desc(), Booking.id.desc())
            .execution_options(populate_existing=True)
        )
        return [self._to_detail(booking, caller.user_id) for booking in result.scalars().all()]

    def _to_detail(self, booking: Booking, viewer_id: int) -> BookingDetail:
        court = booking.court
        owner = booking.user
        return BookingDetail(
            id=booking.id,
            court_id=court.id,
            court_name=court.name,
            court_type=court.type or "OPEN",
            club_name=court.club.name,
            city_name=court.club.city.name,
            start_time=booking.start_time,
            end_time=booking.end_time,
            total_price=booking.total_price,
            status=booking.status,
            is_owner=booking.user_id == viewer_id,
            owner=PersonSummary(
                name=owner.name if owner else None,
                family=owner.family if owner else None,
                email=owner.email if owner else None,
                phone=owner.phone if owner else None,
            ),
            participants=[
                ParticipantInDB(
                    id=p.id,
                    name=p.name or (p.user.name if p.user else None),
                    family=p.user.family if p.user else None,
                    email=p.email or (p.user.email if p.user else None),
                    phone=p.phone or (p.user.phone if p.user else None),
                    gender=p.gender,
                    status=p.status,
                    is_user=p.user_id is not None,
                )
                for p in booking.participants
            ],
            created_at=booking.created_at,
        )

    async def respond_to_invitation(
        self,
        db: AsyncSession,
        caller: Caller,
        booking_id: int,
        accept: bool,
    ) -> BookingParticipant:
        """Accept or decline an invitation already linked to the caller."""
        result = await db.execute(
            select(Booking)
            .where(Booking.id == booking_id)
            .options(selectinload(Booking.participants))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()
        participant = None
        if booking:
            participant = next(
                (p for p in booking.participants if p.user_id == caller.user_id), None
            )

        if not participant:
            raise NotFoundError("Invitation not found")

        if accept:
            _ensure_seat_for(booking, participant)
            participant.status = ParticipantStatus.ACCEPTED
        else:
            participant.status = ParticipantStatus.DECLINED
        await db.commit()

        logger.info(
            f"Booking {booking_id}: user {caller.user_id} {participant.status.value.lower()} invitation"
        )
        return participant

    async def accept_invitation(self, db: AsyncSession, caller: Caller, token: str) -> Booking:
        """
        Join a booking through its invite link.

        An existing participant row for the caller is marked ACCEPTED;
        otherwise a new ACCEPTED participant linked to the caller is added,
        subject to the participant cap.
        """
        result = await db.execute(
            select(Booking)
            .where(Booking.invite_token == token)
            .options(selectinload(Booking.participants))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()

        if not booking:
            raise NotFoundError("Invitation not found")

        if booking.user_id == caller.user_id:
            raise ValidationError("You cannot join your own booking")

        if booking.status != BookingStatus.CONFIRMED:
            raise InvalidStateError("This booking is no longer open for invitations")

        existing = next((p for p in booking.participants if p.user_id == caller.user_id), None)
        if existing:
            _ensure_seat_for(booking, existing)
            existing.status = ParticipantStatus.ACCEPTED
        else:
            if count_active_participants(booking) >= settings.MAX_PARTICIPANTS:
                raise ValidationError(_participant_cap_message())
            booking.participants.append(
                BookingParticipant(
                    user_id=caller.user_id,
                    status=ParticipantStatus.ACCEPTED,
                )
            )

        await db.commit()
        logger.info(f"Booking {booking.id}: user {caller.user_id} joined via invite link")
        return booking

    async def update_booking(
        self,
        db: AsyncSession,
        caller: Caller,
        booking_id: int,
        update: BookingUpdate,
        now: Optional[datetime] = None,
    ) -> str:
        """
        Apply one owner edit to a confirmed booking.

        Returns:
            Human-readable confirmation message
        """
        now = now or utcnow()
        booking = await self._get_booking(db, booking_id, for_update=True)

        if booking.user_id != caller.user_id:
            raise AuthorizationError("You are not the owner of this booking")

        require_editable(booking)

        if update.action == "remove_participant":
            return await self._remove_participant(db, booking, update.participant_id)
        if update.action == "add_participant":
            return await self._add_participant(db, booking, update.participant)
        if update.action == "change_time":
            return await self._change_time(db, booking, update.start_time, update.end_time, now)
        if update.action == "cancel":
            apply_transition(booking, BookingEvent.CANCEL_UNILATERAL, now)
            await db.commit()
            return "Booking cancelled"

        raise ValidationError("Invalid action")

    async def _remove_participant(
        self,
        db: AsyncSession,
        booking: Booking,
        participant_id: Optional[int],
    ) -> str:
        if participant_id is None:
            raise ValidationError("participant_id is required")

        participant = next((p for p in booking.participants if p.id == participant_id), None)
        if not participant:
            raise NotFoundError("Participant not found")

        booking.participants.remove(participant)
        await db.commit()
        logger.info(f"Booking {booking.id}: removed participant {participant_id}")
        return "Participant removed"

    async def _add_participant(
        self,
        db: AsyncSession,
        booking: Booking,
        participant: Optional[ParticipantCreate],
    ) -> str:
        if participant is None:
            raise ValidationError("Participant details are required")

        if count_active_participants(booking) >= settings.MAX_PARTICIPANTS:
            raise ValidationError(_participant_cap_message())

        booking.participants.append(
            BookingParticipant(
                name=participant.name,
                email=participant.email,
                phone=participant.phone,
                gender=participant.gender,
                status=ParticipantStatus.PENDING,
            )
        )
        await db.commit()
        logger.info(f"Booking {booking.id}: invited {participant.name}")
        return "Invitation sent"

    async def _change_time(
        self,
        db: AsyncSession,
        booking: Booking,
        start_time: Optional[datetime],
        end_time: Optional[datetime],
        now: datetime,
    ) -> str:
        if start_time is None or end_time is None:
            raise ValidationError("A new start and end time are required")

        start_time = to_utc_naive(start_time)
        end_time = to_utc_naive(end_time)
        _validate_interval(start_time, end_time)

        if hours_between(now, booking.start_time) < settings.RESCHEDULE_MIN_HOURS:
            raise PolicyViolationError(
                f"The time can only be changed at least {settings.RESCHEDULE_MIN_HOURS} "
                f"hours before the game"
            )

        await availability_service.get_court(db, booking.court_id, for_update=True)

        if not await availability_service.is_slot_available(
            db, booking.court_id, start_time, end_time, exclude_booking_id=booking.id
        ):
            raise ConflictError("This time slot is not available")

        if await has_conflicting_booking(
            db, booking.user_id, start_time, end_time, exclude_booking_id=booking.id
        ):
            raise ConflictError("You already have another booking at this time")

        # Price stays as charged at creation
        booking.start_time = start_time
        booking.end_time = end_time
        await db.commit()

        logger.info(f"Booking {booking.id}: moved to {start_time}-{end_time}")
        return "Booking time changed"

    async def list_all_bookings(
        self,
        db: AsyncSession,
        caller: Caller,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[AdminBookingSummary]:
        """Every booking, newest first, optionally filtered by creation date (admin only)."""
        if not caller.is_admin:
            raise AuthorizationError("You do not have access to this section")

        query = select(Booking).options(
            selectinload(Booking.user),
            selectinload(Booking.court),
        )
        if start_date:
            query = query.where(Booking.created_at >= datetime.combine(start_date, dt_time.min))
        if end_date:
            query = query.where(Booking.created_at <= datetime.combine(end_date, dt_time.max))

        result = await db.execute(query.order_by(Booking.created_at.desc(), Booking.id.desc()))

        return [
            AdminBookingSummary(
                id=booking.id,
                user_name=booking.user.display_name,
                user_email=booking.user.email,
                court_name=booking.court.name,
                start_time=booking.start_time,
                end_time=booking.end_time,
                total_price=Decimal(booking.total_price),
                status=booking.status,
                created_at=booking.created_at,
            )
            for booking in result.scalars().all()
        ]


# Singleton instance
booking_service = BookingService()
