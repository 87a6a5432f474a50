import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from parkmarket.infrastructure.persistence.models.models import (
    Base,
    Booking,
    LocationAnalytics,
    Owner,
    ParkingLocation,
    PricingRule,
    Wallet,
)

CHECK_IN = datetime(2030, 3, 1, 10, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def db_session():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


@pytest.fixture
def location(db_session):
    owner = Owner(name="Owner")
    location = ParkingLocation(
        owner=owner, name="Lot", total_spots=3, available_spots=3, price_per_day=Decimal("50.00")
    )
    db_session.add_all([owner, Wallet(owner=owner), location])
    db_session.commit()
    return location


def _booking(location, **overrides):
    fields = dict(
        location_id=location.id,
        check_in=CHECK_IN,
        check_out=CHECK_IN + timedelta(days=2),
        guest_first_name="Dana",
        guest_last_name="Reyes",
        vehicle_make="Kia",
        vehicle_model="Rio",
        vehicle_color="Red",
        vehicle_plate="AB12",
        total_price=Decimal("117.99"),
        taxes=Decimal("12.00"),
        fees=Decimal("5.99"),
        confirmation_code="PK-ABCDEF-1234",
    )
    fields.update(overrides)
    return Booking(**fields)


def test_location_defaults(db_session, location):
    db_session.refresh(location)

    assert location.id is not None
    assert location.status == "ACTIVE"
    assert location.instant_booking is False
    assert location.cancellation_policy_type is None
    assert location.price_per_day == Decimal("50.00")
    assert location.created_at.tzinfo == timezone.utc
    assert location.owner.wallet.balance == Decimal("0.00")


def test_pricing_rules_relationship(db_session, location):
    db_session.add_all([
        PricingRule(location_id=location.id, name="Holiday", multiplier=Decimal("1.5")),
        PricingRule(location_id=location.id, name="Weekend", multiplier=Decimal("1.2")),
    ])
    db_session.commit()
    db_session.refresh(location)

    assert [rule.name for rule in location.pricing_rules] == ["Holiday", "Weekend"]
    assert location.pricing_rules[0].multiplier == Decimal("1.500")


def test_booking_model(db_session, location):
    booking = _booking(location)
    db_session.add(booking)
    db_session.commit()
    db_session.refresh(booking)

    assert booking.id is not None
    assert booking.status == "PENDING"
    assert booking.commission == Decimal("0.00")
    assert booking.guest_email == ""
    assert booking.check_in == CHECK_IN
    assert booking.location.name == "Lot"


def test_confirmation_code_is_unique(db_session, location):
    db_session.add(_booking(location))
    db_session.commit()

    db_session.add(_booking(location))
    with pytest.raises(IntegrityError):
        db_session.commit()


def test_check_out_must_follow_check_in(db_session, location):
    db_session.add(_booking(location, check_out=CHECK_IN))
    with pytest.raises(IntegrityError):
        db_session.commit()


def test_available_spots_cannot_go_negative(db_session, location):
    location.available_spots = -1
    with pytest.raises(IntegrityError):
        db_session.commit()


def test_location_analytics_is_one_row_per_location(db_session, location):
    db_session.add(LocationAnalytics(location_id=location.id, total_bookings=1, revenue=Decimal("10.00")))
    db_session.commit()

    db_session.add(LocationAnalytics(location_id=location.id))
    with pytest.raises(IntegrityError):
        db_session.commit()
