from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from parkmarket.domain.common import (
    BookingStatus,
    CancellationPolicyType,
    DiscountType,
    LocationStatus,
    PaymentStatus,
    RefundStatus,
    RequestStatus,
    RequestType,
    SessionStatus,
    WalletTransactionType,
)


class PricingRule:
    def __init__(
        self,
        multiplier: Decimal,
        is_active: bool = True,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        name: Optional[str] = None,
        id: Optional[int] = None,
        location_id: Optional[int] = None,
    ):
        self.id = id
        self.location_id = location_id
        self.name = name
        self.multiplier = Decimal(str(multiplier))
        self.is_active = is_active
        self.start_date = start_date
        self.end_date = end_date


class CancellationPolicy:
    def __init__(self, type: CancellationPolicyType, hours: Optional[int] = None):
        self.type = CancellationPolicyType(type)
        self.hours = hours


class Location:
    def __init__(
        self,
        name: str,
        owner_id: int,
        total_spots: int,
        available_spots: int,
        price_per_day: Decimal,
        status: LocationStatus = LocationStatus.ACTIVE,
        pricing_rules: Optional[List[PricingRule]] = None,
        cancellation_policy: Optional[CancellationPolicy] = None,
        instant_booking: bool = False,
        id: Optional[int] = None,
    ):
        self.id = id
        self.name = name
        self.owner_id = owner_id
        self.total_spots = total_spots
        self.available_spots = available_spots
        self.price_per_day = price_per_day
        self.status = status
        self.pricing_rules = pricing_rules or []
        self.cancellation_policy = cancellation_policy
        self.instant_booking = instant_booking

    @property
    def is_active(self) -> bool:
        return self.status == LocationStatus.ACTIVE


class Promotion:
    def __init__(
        self,
        code: str,
        type: DiscountType,
        value: Decimal,
        valid_until: datetime,
        is_active: bool = True,
        used_count: int = 0,
        valid_from: Optional[datetime] = None,
        usage_limit: Optional[int] = None,
        max_discount: Optional[Decimal] = None,
        id: Optional[int] = None,
    ):
        self.id = id
        self.code = code
        self.type = DiscountType(type)
        self.value = Decimal(str(value))
        self.valid_until = valid_until
        self.valid_from = valid_from
        self.is_active = is_active
        self.used_count = used_count
        self.usage_limit = usage_limit
        self.max_discount = max_discount


class CommissionRule:
    def __init__(
        self,
        type: DiscountType,
        value: Decimal,
        is_active: bool = True,
        max_commission: Optional[Decimal] = None,
        id: Optional[int] = None,
    ):
        self.id = id
        self.type = DiscountType(type)
        self.value = Decimal(str(value))
        self.is_active = is_active
        self.max_commission = max_commission


class Booking:
    def __init__(
        self,
        location_id: int,
        check_in: datetime,
        check_out: datetime,
        guest_first_name: str,
        guest_last_name: str,
        guest_email: str,
        guest_phone: str,
        vehicle_make: str,
        vehicle_model: str,
        vehicle_color: str,
        vehicle_plate: str,
        total_price: Decimal,
        taxes: Decimal,
        fees: Decimal,
        commission: Decimal,
        owner_earnings: Decimal,
        confirmation_code: str,
        status: BookingStatus = BookingStatus.PENDING,
        user_id: Optional[int] = None,
        rejection_reason: Optional[str] = None,
        cancellation_reason: Optional[str] = None,
        id: Optional[int] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.user_id = user_id
        self.location_id = location_id
        self.check_in = check_in
        self.check_out = check_out
        self.guest_first_name = guest_first_name
        self.guest_last_name = guest_last_name
        self.guest_email = guest_email
        self.guest_phone = guest_phone
        self.vehicle_make = vehicle_make
        self.vehicle_model = vehicle_model
        self.vehicle_color = vehicle_color
        self.vehicle_plate = vehicle_plate
        self.total_price = total_price
        self.taxes = taxes
        self.fees = fees
        self.commission = commission
        self.owner_earnings = owner_earnings
        self.status = status
        self.confirmation_code = confirmation_code
        self.rejection_reason = rejection_reason
        self.cancellation_reason = cancellation_reason
        self.created_at = created_at
        self.updated_at = updated_at


class Payment:
    def __init__(
        self,
        booking_id: int,
        amount: Decimal,
        provider: str,
        status: PaymentStatus,
        transaction_id: Optional[str] = None,
        currency: str = "USD",
        id: Optional[int] = None,
        created_at: Optional[datetime] = None,
    ):
        self.id = id
        self.booking_id = booking_id
        self.amount = amount
        self.provider = provider
        self.transaction_id = transaction_id
        self.status = status
        self.currency = currency
        self.created_at = created_at


class ParkingSession:
    def __init__(
        self,
        booking_id: int,
        location_id: int,
        status: SessionStatus = SessionStatus.RESERVED,
        check_in_time: Optional[datetime] = None,
        check_out_time: Optional[datetime] = None,
        id: Optional[int] = None,
    ):
        self.id = id
        self.booking_id = booking_id
        self.location_id = location_id
        self.status = status
        self.check_in_time = check_in_time
        self.check_out_time = check_out_time


class RefundRequest:
    def __init__(
        self,
        booking_id: int,
        amount: Decimal,
        reason: str,
        status: RefundStatus = RefundStatus.PENDING,
        approved_amount: Optional[Decimal] = None,
        requires_manual_review: bool = False,
        processed_by: Optional[int] = None,
        processed_at: Optional[datetime] = None,
        notes: Optional[str] = None,
        id: Optional[int] = None,
        created_at: Optional[datetime] = None,
    ):
        self.id = id
        self.booking_id = booking_id
        self.amount = amount
        self.approved_amount = approved_amount
        self.reason = reason
        self.status = status
        self.requires_manual_review = requires_manual_review
        self.processed_by = processed_by
        self.processed_at = processed_at
        self.notes = notes
        self.created_at = created_at


class BookingRequest:
    def __init__(
        self,
        location_id: int,
        request_type: RequestType,
        customer_name: str,
        vehicle_plate: str,
        requested_start: datetime,
        requested_end: datetime,
        estimated_amount: Decimal,
        requested_by: int,
        status: RequestStatus = RequestStatus.PENDING,
        customer_id: Optional[int] = None,
        customer_phone: Optional[str] = None,
        vehicle_type: Optional[str] = None,
        vehicle_make: Optional[str] = None,
        vehicle_model: Optional[str] = None,
        vehicle_color: Optional[str] = None,
        original_booking_id: Optional[int] = None,
        booking_id: Optional[int] = None,
        processed_by: Optional[int] = None,
        processed_at: Optional[datetime] = None,
        rejection_reason: Optional[str] = None,
        id: Optional[int] = None,
    ):
        self.id = id
        self.location_id = location_id
        self.request_type = RequestType(request_type)
        self.customer_id = customer_id
        self.customer_name = customer_name
        self.customer_phone = customer_phone
        self.vehicle_plate = vehicle_plate
        self.vehicle_type = vehicle_type
        self.vehicle_make = vehicle_make
        self.vehicle_model = vehicle_model
        self.vehicle_color = vehicle_color
        self.requested_start = requested_start
        self.requested_end = requested_end
        self.estimated_amount = estimated_amount
        self.requested_by = requested_by
        self.status = status
        self.original_booking_id = original_booking_id
        self.booking_id = booking_id
        self.processed_by = processed_by
        self.processed_at = processed_at
        self.rejection_reason = rejection_reason


class Wallet:
    def __init__(self, owner_id: int, balance: Decimal = Decimal("0.00"), currency: str = "USD", id: Optional[int] = None):
        self.id = id
        self.owner_id = owner_id
        self.balance = balance
        self.currency = currency


class WalletTransaction:
    def __init__(
        self,
        wallet_id: int,
        type: WalletTransactionType,
        amount: Decimal,
        description: str,
        status: str = "SUCCESS",
        reference: Optional[str] = None,
        id: Optional[int] = None,
        created_at: Optional[datetime] = None,
    ):
        self.id = id
        self.wallet_id = wallet_id
        self.type = WalletTransactionType(type)
        self.amount = amount
        self.description = description
        self.status = status
        self.reference = reference
        self.created_at = created_at


class LocationAnalytics:
    def __init__(self, location_id: int, total_bookings: int = 0, revenue: Decimal = Decimal("0.00"), id: Optional[int] = None):
        self.id = id
        self.location_id = location_id
        self.total_bookings = total_bookings
        self.revenue = revenue
