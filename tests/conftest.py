"""Shared fixtures: an in-memory database per test and a seeded catalog."""
import os

# Must be set before any app import reads settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["TIMEZONE"] = "UTC"
os.environ["PAYMENT_MOCK"] = "true"

from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.database import Base
from app.core.security import Caller, Role
from app.models import (
    City,
    Court,
    PricingRule,
    SportsClub,
    User,
)
from app.services.payment_client import PaymentResult, payment_client


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def payment_ok(monkeypatch):
    """Approve every gateway payment unless a test says otherwise."""
    mock = AsyncMock(return_value=PaymentResult(success=True, transaction_id="txn_test"))
    monkeypatch.setattr(payment_client, "initiate", mock)
    return mock


@pytest.fixture
async def users(db):
    player = User(id=1, name="Sara", family="Karimi", email="sara@example.com", role="PLAYER")
    friend = User(id=2, name="Reza", email="reza@example.com", role="PLAYER")
    owner = User(id=3, name="Owner", email="owner@example.com", role="FIELD_OWNER")
    admin = User(id=4, name="Admin", email="admin@example.com", role="ADMIN")
    db.add_all([player, friend, owner, admin])
    await db.commit()
    return {"player": player, "friend": friend, "owner": owner, "admin": admin}


@pytest.fixture
def player():
    return Caller(user_id=1, role=Role.PLAYER)


@pytest.fixture
def friend():
    return Caller(user_id=2, role=Role.PLAYER)


@pytest.fixture
def owner():
    return Caller(user_id=3, role=Role.FIELD_OWNER)


@pytest.fixture
def admin():
    return Caller(user_id=4, role=Role.ADMIN)


@pytest.fixture
async def club(db, users):
    city = City(name="Tehran")
    club = SportsClub(name="Azadi Padel", city=city, owner_id=users["owner"].id)
    db.add(club)
    await db.commit()
    return club


@pytest.fixture
async def court(db, club, users):
    """Court A: base 100,000 with an evening peak rule."""
    court = Court(
        name="Court A",
        type="CLOSE",
        base_price_per_hour=Decimal("100000"),
        sports_club_id=club.id,
        owner_id=users["owner"].id,
        pricing_rules=[PricingRule(start_time="18:00", end_time="23:00", multiplier=1.5)],
    )
    db.add(court)
    await db.commit()
    return court


@pytest.fixture
async def court_b(db, club, users):
    court = Court(
        name="Court B",
        type="OPEN",
        base_price_per_hour=Decimal("80000"),
        sports_club_id=club.id,
        owner_id=users["owner"].id,
    )
    db.add(court)
    await db.commit()
    return court


@pytest.fixture
def day():
    """A calendar day safely in the future."""
    return date.today() + timedelta(days=3)

