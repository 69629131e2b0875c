"""Read access to cities, clubs and courts, plus pricing rule additions."""
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import AuthorizationError, NotFoundError
from app.core.security import Caller
from app.models.city import City
from app.models.club import SportsClub
from app.models.court import Court, PricingRule
from app.schemas.catalog import CourtSummary, PricingRuleInDB
from app.services.availability_service import availability_service

logger = logging.getLogger(__name__)


def _court_options():
    return (
        selectinload(Court.club).selectinload(SportsClub.city),
        selectinload(Court.pricing_rules),
    )


def to_court_summary(court: Court) -> CourtSummary:
    return CourtSummary(
        id=court.id,
        name=court.name,
        type=court.type or "OPEN",
        base_price_per_hour=court.base_price_per_hour,
        owner_id=court.owner_id,
        club_id=court.sports_club_id,
        club_name=court.club.name,
        city_name=court.club.city.name,
        pricing_rules=[PricingRuleInDB.model_validate(rule) for rule in court.pricing_rules],
        created_at=court.created_at,
    )


class CatalogService:
    """Service for catalog lookups."""

    async def list_cities(self, db: AsyncSession) -> List[City]:
        result = await db.execute(select(City).order_by(City.name))
        return list(result.scalars().all())

    async def list_clubs(self, db: AsyncSession, city_id: Optional[int] = None) -> List[SportsClub]:
        query = select(SportsClub).order_by(SportsClub.name)
        if city_id is not None:
            query = query.where(SportsClub.city_id == city_id)

        result = await db.execute(query)
        return list(result.scalars().all())

    async def list_courts(
        self,
        db: AsyncSession,
        club_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[CourtSummary]:
        query = select(Court).options(*_court_options()).order_by(Court.name)
        if club_id is not None:
            query = query.where(Court.sports_club_id == club_id)

        result = await db.execute(query.offset(skip).limit(limit))
        return [to_court_summary(court) for court in result.scalars().all()]

    async def get_court_summary(self, db: AsyncSession, court_id: int) -> CourtSummary:
        result = await db.execute(
            select(Court).where(Court.id == court_id).options(*_court_options())
        )
        court = result.scalar_one_or_none()

        if not court:
            raise NotFoundError("Court not found")

        return to_court_summary(court)

    async def add_pricing_rule(
        self,
        db: AsyncSession,
        caller: Caller,
        court_id: int,
        start_time: str,
        end_time: str,
        multiplier: float,
    ) -> PricingRule:
        """
        Append a pricing rule to a court.

        New rules go after existing ones, so they only take effect where no
        earlier rule already matches.

        Args:
            db: Database session
            caller: Admin, or the field owner of the court
            court_id: Court ID
            start_time: Window start, HH:mm
            end_time: Window end, HH:mm (at or before start wraps midnight)
            multiplier: Positive factor applied to the base price
        """
        if not (caller.is_admin or caller.is_field_owner):
            raise AuthorizationError("You do not have access to this section")

        court = await availability_service.get_court(db, court_id)

        if caller.is_field_owner and court.owner_id != caller.user_id:
            raise AuthorizationError("You are not the owner of this court")

        rule = PricingRule(
            start_time=start_time,
            end_time=end_time,
            multiplier=multiplier,
        )
        court.pricing_rules.append(rule)
        await db.commit()
        await db.refresh(rule)

        logger.info(
            f"Court {court_id}: pricing rule {start_time}-{end_time} x{multiplier} added"
        )
        return rule


# Singleton instance
catalog_service = CatalogService()
