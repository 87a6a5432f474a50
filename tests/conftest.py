import os
import tempfile
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from parkmarket.application.notifications import NotificationDispatcher
from parkmarket.application.services.booking_service import BookingService
from parkmarket.application.services.refund_service import RefundService
from parkmarket.application.services.request_conversion_service import RequestConversionService
from parkmarket.application.services.session_service import SessionService
from parkmarket.config.settings_env import Settings
from parkmarket.infrastructure.persistence.database import configure_sqlite_locking
from parkmarket.infrastructure.persistence.models.models import Base, Owner, ParkingLocation, Wallet
from parkmarket.infrastructure.persistence.models.models import BookingRequest as BookingRequestModel
from parkmarket.infrastructure.persistence.unit_of_work import SQLAlchemyUnitOfWork
from parkmarket.schemas.booking import BookingIntent

CHECK_IN = datetime(2030, 3, 1, 10, 0, tzinfo=timezone.utc)
CHECK_OUT = CHECK_IN + timedelta(days=2)


# Event loop fixture removed - pytest-asyncio provides it automatically


@pytest.fixture(scope="function")
async def test_db():
    """Create a test database for each test function."""
    # Create a temporary file for the test database
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as tmp_file:
        test_db_path = tmp_file.name

    # NullPool: every unit of work gets its own connection, like separate requests
    test_db_url = f"sqlite+aiosqlite:///{test_db_path}"
    engine = create_async_engine(
        test_db_url,
        poolclass=NullPool,
        connect_args={"timeout": 15},
        echo=False
    )
    configure_sqlite_locking(engine)

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Create session factory
    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False
    )

    # Yield the session factory
    yield async_session_maker

    # Cleanup
    await engine.dispose()
    os.unlink(test_db_path)


@pytest.fixture
def seed(test_db):
    """Insert ORM rows in their own committed transaction."""
    async def _seed(*instances):
        async with test_db() as session:
            session.add_all(instances)
            await session.commit()
        return instances[0] if len(instances) == 1 else instances
    return _seed


@pytest.fixture
def fetch(test_db):
    """Read a row by primary key in a short-lived session."""
    async def _fetch(model, ident):
        async with test_db() as session:
            return await session.get(model, ident)
    return _fetch


@pytest.fixture
def fetch_all(test_db):
    async def _fetch_all(model, *criteria):
        async with test_db() as session:
            result = await session.execute(select(model).where(*criteria).order_by(model.id))
            return list(result.scalars().all())
    return _fetch_all


@pytest.fixture
def count_rows(test_db):
    async def _count_rows(model, *criteria):
        async with test_db() as session:
            result = await session.execute(select(func.count(model.id)).where(*criteria))
            return result.scalar()
    return _count_rows


@pytest.fixture
def test_settings():
    """Provide test settings."""
    return Settings(
        DEV_MODE=False,
        ASYNC_DATABASE_URL="sqlite+aiosqlite:///:memory:",
    )


@pytest.fixture
async def owner(seed):
    owner = Owner(name="Harbor Lots LLC", email="owner@example.com")
    await seed(owner, Wallet(owner=owner, balance=Decimal("0.00"), currency="USD"))
    return owner


@pytest.fixture
def make_location(seed, owner):
    async def _make_location(**overrides):
        fields = dict(
            owner_id=owner.id,
            name="Airport Long Stay",
            total_spots=1,
            available_spots=1,
            price_per_day=Decimal("50.00"),
            status="ACTIVE",
            instant_booking=False,
            cancellation_policy_type="moderate",
            cancellation_hours=24,
        )
        fields.update(overrides)
        return await seed(ParkingLocation(**fields))
    return _make_location


@pytest.fixture
async def location(make_location):
    """One spot at $50/day, moderate policy with a 24h deadline."""
    return await make_location()


@pytest.fixture
def make_intent():
    def _make_intent(location_id, check_in=CHECK_IN, check_out=CHECK_OUT, **overrides):
        fields = dict(
            location_id=location_id,
            check_in=check_in,
            check_out=check_out,
            guest={"first_name": "Dana", "last_name": "Reyes", "email": "dana@example.com", "phone": "555-0100"},
            vehicle={"make": "Toyota", "model": "Corolla", "color": "Blue", "plate": " abc123 "},
            user_id=7,
        )
        fields.update(overrides)
        return BookingIntent(**fields)
    return _make_intent


@pytest.fixture
def notifier():
    return AsyncMock()


@pytest.fixture
def dispatcher(notifier):
    return NotificationDispatcher(notifier)


@pytest.fixture
def booking_service(test_db, dispatcher, test_settings):
    return BookingService(SQLAlchemyUnitOfWork(test_db), dispatcher, test_settings)


@pytest.fixture
def conversion_service(test_db, dispatcher, test_settings):
    return RequestConversionService(SQLAlchemyUnitOfWork(test_db), dispatcher, test_settings)


@pytest.fixture
def session_service(test_db, test_settings):
    return SessionService(SQLAlchemyUnitOfWork(test_db), test_settings)


@pytest.fixture
def refund_service(test_db):
    return RefundService(SQLAlchemyUnitOfWork(test_db))


@pytest.fixture
def make_request(seed, location):
    """Staff-originated booking request at the default location."""
    async def _make_request(**overrides):
        fields = dict(
            location_id=location.id,
            request_type="WALK_IN",
            customer_name="Ana Maria Lopez",
            customer_phone="555-0199",
            vehicle_plate="wlk 42",
            requested_start=datetime(2030, 3, 1, 11, 0, tzinfo=timezone.utc),
            requested_end=datetime(2030, 3, 1, 18, 0, tzinfo=timezone.utc),
            estimated_amount=Decimal("40.00"),
            requested_by=501,
            status="PENDING",
        )
        fields.update(overrides)
        return await seed(BookingRequestModel(**fields))
    return _make_request
