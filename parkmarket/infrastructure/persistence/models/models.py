from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship

from parkmarket.shared.custom_types import ExactDecimal, Money, UTCDateTime

Base = declarative_base()


def _now():
    return datetime.now(timezone.utc)


class Owner(Base):
    __tablename__ = "owners"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    created_at = Column(UTCDateTime, default=_now)

    wallet = relationship("Wallet", back_populates="owner", uselist=False)
    locations = relationship("ParkingLocation", back_populates="owner")


class Wallet(Base):
    __tablename__ = "wallets"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("owners.id"), unique=True, nullable=False)
    balance = Column(Money, default=Decimal("0.00"), nullable=False)
    currency = Column(String, default="USD", nullable=False)

    owner = relationship("Owner", back_populates="wallet")
    transactions = relationship("WalletTransaction", back_populates="wallet")


class WalletTransaction(Base):
    __tablename__ = "wallet_transactions"

    id = Column(Integer, primary_key=True, index=True)
    wallet_id = Column(Integer, ForeignKey("wallets.id"), nullable=False, index=True)
    type = Column(String, nullable=False)  # CREDIT, DEBIT, REFUND
    amount = Column(Money, nullable=False)
    description = Column(String, nullable=False)
    status = Column(String, default="SUCCESS")
    reference = Column(String, nullable=True, index=True)
    created_at = Column(UTCDateTime, default=_now)

    wallet = relationship("Wallet", back_populates="transactions")


class ParkingLocation(Base):
    __tablename__ = "parking_locations"
    __table_args__ = (
        CheckConstraint("total_spots >= 0", name="ck_location_total_spots"),
        CheckConstraint("available_spots >= 0", name="ck_location_available_spots"),
    )

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("owners.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    total_spots = Column(Integer, nullable=False)
    available_spots = Column(Integer, nullable=False)
    price_per_day = Column(Money, nullable=False)
    status = Column(String, default="ACTIVE", nullable=False)  # ACTIVE, INACTIVE
    instant_booking = Column(Boolean, default=False, nullable=False)
    cancellation_policy_type = Column(String, nullable=True)  # free, moderate, strict
    cancellation_hours = Column(Integer, nullable=True)
    created_at = Column(UTCDateTime, default=_now)
    updated_at = Column(UTCDateTime, default=_now, onupdate=_now)

    owner = relationship("Owner", back_populates="locations")
    pricing_rules = relationship("PricingRule", back_populates="location", order_by="PricingRule.id")
    bookings = relationship("Booking", back_populates="location")


class PricingRule(Base):
    __tablename__ = "pricing_rules"

    id = Column(Integer, primary_key=True, index=True)
    location_id = Column(Integer, ForeignKey("parking_locations.id"), nullable=False, index=True)
    name = Column(String, nullable=True)
    multiplier = Column(ExactDecimal(6, 3), nullable=False, default=Decimal("1.000"))
    is_active = Column(Boolean, default=True, nullable=False)
    start_date = Column(UTCDateTime, nullable=True)
    end_date = Column(UTCDateTime, nullable=True)

    location = relationship("ParkingLocation", back_populates="pricing_rules")


class Promotion(Base):
    __tablename__ = "promotions"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, index=True, nullable=False)
    type = Column(String, nullable=False)  # percentage, fixed
    value = Column(Money, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    valid_from = Column(UTCDateTime, nullable=True)
    valid_until = Column(UTCDateTime, nullable=False)
    used_count = Column(Integer, default=0, nullable=False)
    usage_limit = Column(Integer, nullable=True)
    max_discount = Column(Money, nullable=True)


class CommissionRule(Base):
    __tablename__ = "commission_rules"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String, nullable=False)  # percentage, fixed
    value = Column(Money, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    max_commission = Column(Money, nullable=True)
    created_at = Column(UTCDateTime, default=_now)


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        UniqueConstraint("confirmation_code", name="uq_booking_confirmation_code"),
        CheckConstraint("check_out > check_in", name="ck_booking_date_range"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=True, index=True)
    location_id = Column(Integer, ForeignKey("parking_locations.id"), nullable=False, index=True)
    check_in = Column(UTCDateTime, nullable=False, index=True)
    check_out = Column(UTCDateTime, nullable=False)
    guest_first_name = Column(String, nullable=False)
    guest_last_name = Column(String, nullable=False)
    guest_email = Column(String, nullable=False, default="")
    guest_phone = Column(String, nullable=False, default="")
    vehicle_make = Column(String, nullable=False)
    vehicle_model = Column(String, nullable=False)
    vehicle_color = Column(String, nullable=False)
    vehicle_plate = Column(String, nullable=False)
    total_price = Column(Money, nullable=False)
    taxes = Column(Money, nullable=False)
    fees = Column(Money, nullable=False)
    commission = Column(Money, nullable=False, default=Decimal("0.00"))
    owner_earnings = Column(Money, nullable=False, default=Decimal("0.00"))
    status = Column(String, default="PENDING", nullable=False, index=True)
    confirmation_code = Column(String, nullable=False, index=True)
    rejection_reason = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, default=_now)
    updated_at = Column(UTCDateTime, default=_now, onupdate=_now)

    location = relationship("ParkingLocation", back_populates="bookings")
    payment = relationship("Payment", back_populates="booking", uselist=False)
    parking_session = relationship("ParkingSession", back_populates="booking", uselist=False)
    refunds = relationship("RefundRequest", back_populates="booking")


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), unique=True, nullable=False)
    amount = Column(Money, nullable=False)
    provider = Column(String, nullable=False)
    transaction_id = Column(String, nullable=True)
    status = Column(String, default="PENDING", nullable=False)  # PENDING, SUCCESS
    currency = Column(String, default="USD", nullable=False)
    created_at = Column(UTCDateTime, default=_now)

    booking = relationship("Booking", back_populates="payment")


class ParkingSession(Base):
    __tablename__ = "parking_sessions"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), unique=True, nullable=False)
    location_id = Column(Integer, ForeignKey("parking_locations.id"), nullable=False, index=True)
    status = Column(String, default="RESERVED", nullable=False)  # RESERVED, pending, checked_in, checked_out, cancelled
    check_in_time = Column(UTCDateTime, nullable=True)
    check_out_time = Column(UTCDateTime, nullable=True)

    booking = relationship("Booking", back_populates="parking_session")


class RefundRequest(Base):
    __tablename__ = "refund_requests"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    amount = Column(Money, nullable=False)
    approved_amount = Column(Money, nullable=True)
    reason = Column(Text, nullable=False)
    status = Column(String, default="PENDING", nullable=False)  # PENDING, APPROVED, REJECTED
    requires_manual_review = Column(Boolean, default=False, nullable=False)
    processed_by = Column(Integer, nullable=True)
    processed_at = Column(UTCDateTime, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, default=_now)

    booking = relationship("Booking", back_populates="refunds")


class BookingRequest(Base):
    __tablename__ = "booking_requests"

    id = Column(Integer, primary_key=True, index=True)
    location_id = Column(Integer, ForeignKey("parking_locations.id"), nullable=False, index=True)
    request_type = Column(String, nullable=False)  # WALK_IN, EXTENSION, MODIFICATION, EARLY_CHECKOUT
    customer_id = Column(Integer, nullable=True)
    customer_name = Column(String, nullable=False)
    customer_phone = Column(String, nullable=True)
    vehicle_plate = Column(String, nullable=False)
    vehicle_type = Column(String, nullable=True)
    vehicle_make = Column(String, nullable=True)
    vehicle_model = Column(String, nullable=True)
    vehicle_color = Column(String, nullable=True)
    requested_start = Column(UTCDateTime, nullable=False)
    requested_end = Column(UTCDateTime, nullable=False)
    estimated_amount = Column(Money, nullable=False)
    requested_by = Column(Integer, nullable=False)
    status = Column(String, default="PENDING", nullable=False)  # PENDING, APPROVED, REJECTED
    original_booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    processed_by = Column(Integer, nullable=True)
    processed_at = Column(UTCDateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, default=_now)


class LocationAnalytics(Base):
    __tablename__ = "location_analytics"

    id = Column(Integer, primary_key=True, index=True)
    location_id = Column(Integer, ForeignKey("parking_locations.id"), unique=True, nullable=False)
    total_bookings = Column(Integer, default=0, nullable=False)
    revenue = Column(Money, default=Decimal("0.00"), nullable=False)
