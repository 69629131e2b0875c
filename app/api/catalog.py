"""Catalog endpoints."""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import Caller, get_current_caller
from app.schemas.catalog import CityInDB, ClubInDB, CourtSummary, PricingRuleCreate, PricingRuleInDB
from app.schemas.common import ERROR_RESPONSES
from app.services.catalog_service import catalog_service

router = APIRouter(tags=["catalog"], responses=ERROR_RESPONSES)


@router.get("/cities", response_model=List[CityInDB])
async def list_cities(db: AsyncSession = Depends(get_db)):
    """List all cities."""
    return await catalog_service.list_cities(db)


@router.get("/clubs", response_model=List[ClubInDB])
async def list_clubs(
    city_id: Optional[int] = Query(default=None, description="Only clubs in this city"),
    db: AsyncSession = Depends(get_db),
):
    """List sports clubs, optionally filtered by city."""
    return await catalog_service.list_clubs(db, city_id)


@router.get("/courts", response_model=List[CourtSummary])
async def list_courts(
    club_id: Optional[int] = Query(default=None, description="Only courts of this club"),
    skip: int = 0,
    limit: int = 100,
    db: AsyncSession = Depends(get_db),
):
    """
    List courts with their club, city and pricing rules.

    Args:
        club_id: Optional club filter
        skip: Number of records to skip
        limit: Maximum number of records to return
        db: Database session

    Returns:
        List of courts
    """
    return await catalog_service.list_courts(db, club_id, skip, limit)


@router.get("/courts/{court_id}", response_model=CourtSummary)
async def get_court(court_id: int, db: AsyncSession = Depends(get_db)):
    """Get a specific court by ID."""
    return await catalog_service.get_court_summary(db, court_id)


@router.post("/courts/{court_id}/pricing-rules", response_model=PricingRuleInDB, status_code=201)
async def add_pricing_rule(
    court_id: int,
    rule: PricingRuleCreate,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """
    Add a time-of-day pricing rule to a court.

    Rules are evaluated in the order they were added; the first one whose
    window contains a slot's start time sets that slot's multiplier.

    Args:
        court_id: Court ID
        rule: Window and multiplier
        caller: Admin or the court's field owner
        db: Database session

    Returns:
        Created rule
    """
    return await catalog_service.add_pricing_rule(
        db, caller, court_id, rule.start_time, rule.end_time, rule.multiplier
    )
