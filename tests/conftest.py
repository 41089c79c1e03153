"""
Test configuration and fixtures for the chat booking tests.

Runs every test against a fresh in-memory SQLite database and uses the
pattern extractor so no language model is called.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ.pop("OPENAI_API_KEY", None)

from datetime import datetime, time

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from chatbooking.models import Base, Business, BusinessHours, Service, Blackout, Booking

# Sunday; the next day is Monday 2030-03-04
NOW = datetime(2030, 3, 3, 10, 0)


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
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def business(db):
    """A business open Monday to Friday, 09:00 to 17:00."""
    business = Business(slug="cool-salon", business_name="Cool Salon", timezone="UTC", is_active=True)
    db.add(business)
    await db.flush()

    for day in range(7):
        db.add(BusinessHours(
            business_id=business.id,
            day_of_week=day,
            open_time=time(9, 0) if day < 5 else None,
            close_time=time(17, 0) if day < 5 else None,
            is_closed=day >= 5,
        ))
    await db.commit()
    return business


@pytest.fixture
def add_service(db, business):
    async def _add(name="Haircut", duration=30, buffer=0, active=True, owner=None):
        service = Service(
            business_id=(owner or business).id,
            service_name=name,
            duration_minutes=duration,
            buffer_minutes=buffer,
            is_active=active,
        )
        db.add(service)
        await db.commit()
        return service
    return _add


@pytest.fixture
async def service(add_service):
    return await add_service()


@pytest.fixture
def add_booking(db, business):
    async def _add(service, start, end, status="pending", thread_id=None):
        booking = Booking(
            business_id=business.id,
            service_id=service.id,
            slot_start=start,
            slot_end=end,
            status=status,
            customer_name="Existing Customer",
            customer_phone="+15550000000",
            thread_id=thread_id,
        )
        db.add(booking)
        await db.commit()
        return booking
    return _add


@pytest.fixture
def add_blackout(db, business):
    async def _add(start_date, end_date=None, reason="Holiday"):
        blackout = Blackout(business_id=business.id, start_date=start_date, end_date=end_date, reason=reason)
        db.add(blackout)
        await db.commit()
        return blackout
    return _add
