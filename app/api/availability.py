"""Availability endpoints."""
from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.schemas.availability import AvailabilityResponse
from app.schemas.common import ERROR_RESPONSES
from app.services.availability_service import availability_service

router = APIRouter(prefix="/courts/{court_id}", tags=["availability"], responses=ERROR_RESPONSES)


@router.get("/slots", response_model=AvailabilityResponse)
async def get_available_slots(
    court_id: int,
    date: date = Query(..., description="Calendar date in the service time zone"),
    db: AsyncSession = Depends(get_db),
):
    """
    Get the hourly slots of a court for one day.

    Each slot is marked available unless a pending or confirmed booking overlaps it,
    and carries its price after time-of-day rules.

    Args:
        court_id: Court ID
        date: Day to list
        db: Database session

    Returns:
        Slots within operating hours
    """
    slots = await availability_service.get_available_slots(db, court_id, date)
    return AvailabilityResponse(court_id=court_id, date=date, slots=slots)
