"""Cancellation policy and verified-cancellation endpoints."""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import Caller, get_current_caller
from app.schemas.booking import CancellationRequestCreate
from app.schemas.cancellation import (
    CancellationPolicyInDB,
    CancellationPolicySet,
    CancellationRequestSummary,
    CancellationVerify,
)
from app.schemas.common import ERROR_RESPONSES, ActionResult
from app.services.cancellation_service import cancellation_service

router = APIRouter(tags=["cancellations"], responses=ERROR_RESPONSES)


@router.put("/courts/{court_id}/cancellation-policy", response_model=CancellationPolicyInDB)
async def set_cancellation_policy(
    court_id: int,
    policy: CancellationPolicySet,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """
    Create or replace a court's cancellation policy.

    Args:
        court_id: Court ID
        policy: Lead time and refund percentage
        caller: Court owner or admin
        db: Database session

    Returns:
        Stored policy
    """
    return await cancellation_service.set_policy(
        db,
        caller,
        court_id,
        policy.hours_before_start,
        policy.refund_percentage,
        policy.description,
    )


@router.get("/courts/{court_id}/cancellation-policy", response_model=CancellationPolicyInDB)
async def get_cancellation_policy(court_id: int, db: AsyncSession = Depends(get_db)):
    """Get a court's cancellation policy."""
    return await cancellation_service.get_policy(db, court_id)


@router.post("/bookings/{booking_id}/cancellation-request", response_model=ActionResult)
async def request_cancellation(
    booking_id: int,
    request: CancellationRequestCreate,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """Ask the field owner to cancel and refund a confirmed booking."""
    await cancellation_service.request_cancellation(db, caller, booking_id, request.reason)
    return ActionResult(
        message="Cancellation request submitted. Waiting for the field owner's approval"
    )


@router.get("/cancellations", response_model=List[CancellationRequestSummary])
async def list_cancellation_requests(
    start_date: Optional[date] = Query(default=None, description="Requested on or after"),
    end_date: Optional[date] = Query(default=None, description="Requested on or before"),
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """List pending cancellation requests for the caller's courts (all courts for admins)."""
    return await cancellation_service.list_cancellation_requests(
        db, caller, start_date, end_date
    )


@router.post("/cancellations/{booking_id}/verify", response_model=ActionResult)
async def verify_cancellation(
    booking_id: int,
    decision: CancellationVerify,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """
    Approve or reject a cancellation request.

    Approval refunds the policy's percentage of the booking total from the
    field owner's wallet to the player's wallet.
    """
    _, amount = await cancellation_service.verify_cancellation(
        db, caller, booking_id, decision.approve
    )
    if decision.approve:
        message = f"Cancellation approved and {amount} refunded to the player's wallet"
    else:
        message = "Cancellation request rejected"
    return ActionResult(message=message)
