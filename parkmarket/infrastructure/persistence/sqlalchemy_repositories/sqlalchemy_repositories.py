from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import and_, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from parkmarket.application.repositories import (
    AbstractBookingRepository,
    AbstractBookingRequestRepository,
    AbstractCommissionRuleRepository,
    AbstractLocationAnalyticsRepository,
    AbstractLocationRepository,
    AbstractParkingSessionRepository,
    AbstractPaymentRepository,
    AbstractPromotionRepository,
    AbstractRefundRequestRepository,
    AbstractWalletRepository,
)
from parkmarket.domain.availability import OCCUPYING_STATUSES
from parkmarket.domain.common import (
    BookingStatus,
    LocationStatus,
    PaymentStatus,
    RefundStatus,
    RequestStatus,
    SessionStatus,
    WalletTransactionType,
)
from parkmarket.domain.entities import (
    Booking,
    BookingRequest,
    CancellationPolicy,
    CommissionRule,
    Location,
    LocationAnalytics,
    ParkingSession,
    Payment,
    PricingRule,
    Promotion,
    RefundRequest,
    Wallet,
    WalletTransaction,
)
from parkmarket.infrastructure.persistence.models.models import (
    Booking as ORMBooking,
    BookingRequest as ORMBookingRequest,
    CommissionRule as ORMCommissionRule,
    LocationAnalytics as ORMLocationAnalytics,
    ParkingLocation as ORMParkingLocation,
    ParkingSession as ORMParkingSession,
    Payment as ORMPayment,
    Promotion as ORMPromotion,
    RefundRequest as ORMRefundRequest,
    Wallet as ORMWallet,
    WalletTransaction as ORMWalletTransaction,
)


def _to_location(orm_location: ORMParkingLocation) -> Location:
    policy = None
    if orm_location.cancellation_policy_type:
        policy = CancellationPolicy(type=orm_location.cancellation_policy_type, hours=orm_location.cancellation_hours)
    return Location(
        id=orm_location.id,
        name=orm_location.name,
        owner_id=orm_location.owner_id,
        total_spots=orm_location.total_spots,
        available_spots=orm_location.available_spots,
        price_per_day=orm_location.price_per_day,
        status=LocationStatus(orm_location.status),
        instant_booking=orm_location.instant_booking,
        cancellation_policy=policy,
        pricing_rules=[
            PricingRule(
                id=rule.id,
                location_id=rule.location_id,
                name=rule.name,
                multiplier=rule.multiplier,
                is_active=rule.is_active,
                start_date=rule.start_date,
                end_date=rule.end_date,
            ) for rule in orm_location.pricing_rules
        ],
    )


def _to_booking(orm_booking: ORMBooking) -> Booking:
    return Booking(
        id=orm_booking.id,
        user_id=orm_booking.user_id,
        location_id=orm_booking.location_id,
        check_in=orm_booking.check_in,
        check_out=orm_booking.check_out,
        guest_first_name=orm_booking.guest_first_name,
        guest_last_name=orm_booking.guest_last_name,
        guest_email=orm_booking.guest_email,
        guest_phone=orm_booking.guest_phone,
        vehicle_make=orm_booking.vehicle_make,
        vehicle_model=orm_booking.vehicle_model,
        vehicle_color=orm_booking.vehicle_color,
        vehicle_plate=orm_booking.vehicle_plate,
        total_price=orm_booking.total_price,
        taxes=orm_booking.taxes,
        fees=orm_booking.fees,
        commission=orm_booking.commission,
        owner_earnings=orm_booking.owner_earnings,
        status=BookingStatus(orm_booking.status),
        confirmation_code=orm_booking.confirmation_code,
        rejection_reason=orm_booking.rejection_reason,
        cancellation_reason=orm_booking.cancellation_reason,
        created_at=orm_booking.created_at,
        updated_at=orm_booking.updated_at,
    )


def _to_session(orm_session: ORMParkingSession) -> ParkingSession:
    return ParkingSession(
        id=orm_session.id,
        booking_id=orm_session.booking_id,
        location_id=orm_session.location_id,
        status=SessionStatus(orm_session.status),
        check_in_time=orm_session.check_in_time,
        check_out_time=orm_session.check_out_time,
    )


def _to_refund(orm_refund: ORMRefundRequest) -> RefundRequest:
    return RefundRequest(
        id=orm_refund.id,
        booking_id=orm_refund.booking_id,
        amount=orm_refund.amount,
        approved_amount=orm_refund.approved_amount,
        reason=orm_refund.reason,
        status=RefundStatus(orm_refund.status),
        requires_manual_review=orm_refund.requires_manual_review,
        processed_by=orm_refund.processed_by,
        processed_at=orm_refund.processed_at,
        notes=orm_refund.notes,
        created_at=orm_refund.created_at,
    )


def _to_request(orm_request: ORMBookingRequest) -> BookingRequest:
    return BookingRequest(
        id=orm_request.id,
        location_id=orm_request.location_id,
        request_type=orm_request.request_type,
        customer_id=orm_request.customer_id,
        customer_name=orm_request.customer_name,
        customer_phone=orm_request.customer_phone,
        vehicle_plate=orm_request.vehicle_plate,
        vehicle_type=orm_request.vehicle_type,
        vehicle_make=orm_request.vehicle_make,
        vehicle_model=orm_request.vehicle_model,
        vehicle_color=orm_request.vehicle_color,
        requested_start=orm_request.requested_start,
        requested_end=orm_request.requested_end,
        estimated_amount=orm_request.estimated_amount,
        requested_by=orm_request.requested_by,
        status=RequestStatus(orm_request.status),
        original_booking_id=orm_request.original_booking_id,
        booking_id=orm_request.booking_id,
        processed_by=orm_request.processed_by,
        processed_at=orm_request.processed_at,
        rejection_reason=orm_request.rejection_reason,
    )


def _to_wallet(orm_wallet: ORMWallet) -> Wallet:
    return Wallet(id=orm_wallet.id, owner_id=orm_wallet.owner_id, balance=orm_wallet.balance, currency=orm_wallet.currency)


class SQLAlchemyLocationRepository(AbstractLocationRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, location_id: int, for_update: bool = False) -> Optional[Location]:
        query = (
            select(ORMParkingLocation)
            .where(ORMParkingLocation.id == location_id)
            .options(selectinload(ORMParkingLocation.pricing_rules))
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(query)
        orm_location = result.scalars().first()
        if orm_location:
            return _to_location(orm_location)
        return None

    async def update(self, location: Location) -> Location:
        orm_location = await self.session.get(ORMParkingLocation, location.id)
        if orm_location:
            orm_location.available_spots = location.available_spots
            orm_location.status = location.status.value
            await self.session.flush()
            return location
        raise ValueError(f"Parking location with ID {location.id} not found.")


class SQLAlchemyBookingRepository(AbstractBookingRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, booking_id: int, for_update: bool = False) -> Optional[Booking]:
        query = select(ORMBooking).where(ORMBooking.id == booking_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(query)
        orm_booking = result.scalars().first()
        if orm_booking:
            return _to_booking(orm_booking)
        return None

    async def get_by_confirmation_code(self, confirmation_code: str) -> Optional[Booking]:
        result = await self.session.execute(
            select(ORMBooking).where(ORMBooking.confirmation_code == confirmation_code.strip().upper())
        )
        orm_booking = result.scalars().first()
        if orm_booking:
            return _to_booking(orm_booking)
        return None

    async def confirmation_code_exists(self, confirmation_code: str) -> bool:
        result = await self.session.execute(
            select(func.count(ORMBooking.id)).where(ORMBooking.confirmation_code == confirmation_code)
        )
        return (result.scalar() or 0) > 0

    async def count_overlapping(
        self, location_id: int, check_in: datetime, check_out: datetime, exclude_booking_id: Optional[int] = None
    ) -> int:
        conditions = [
            ORMBooking.location_id == location_id,
            ORMBooking.status.in_([status.value for status in OCCUPYING_STATUSES]),
            ORMBooking.check_in < check_out,
            ORMBooking.check_out > check_in,
        ]
        if exclude_booking_id is not None:
            conditions.append(ORMBooking.id != exclude_booking_id)

        result = await self.session.execute(select(func.count(ORMBooking.id)).where(and_(*conditions)))
        return result.scalar() or 0

    async def add(self, booking: Booking) -> Booking:
        orm_booking = ORMBooking(
            user_id=booking.user_id,
            location_id=booking.location_id,
            check_in=booking.check_in,
            check_out=booking.check_out,
            guest_first_name=booking.guest_first_name,
            guest_last_name=booking.guest_last_name,
            guest_email=booking.guest_email,
            guest_phone=booking.guest_phone,
            vehicle_make=booking.vehicle_make,
            vehicle_model=booking.vehicle_model,
            vehicle_color=booking.vehicle_color,
            vehicle_plate=booking.vehicle_plate,
            total_price=booking.total_price,
            taxes=booking.taxes,
            fees=booking.fees,
            commission=booking.commission,
            owner_earnings=booking.owner_earnings,
            status=booking.status.value,
            confirmation_code=booking.confirmation_code,
        )
        self.session.add(orm_booking)
        await self.session.flush()
        await self.session.refresh(orm_booking)
        return _to_booking(orm_booking)

    async def update(self, booking: Booking) -> Booking:
        orm_booking = await self.session.get(ORMBooking, booking.id)
        if orm_booking:
            orm_booking.check_out = booking.check_out
            orm_booking.total_price = booking.total_price
            orm_booking.status = booking.status.value
            orm_booking.rejection_reason = booking.rejection_reason
            orm_booking.cancellation_reason = booking.cancellation_reason
            await self.session.flush()
            await self.session.refresh(orm_booking)
            return _to_booking(orm_booking)
        raise ValueError(f"Booking with ID {booking.id} not found.")


class SQLAlchemyPaymentRepository(AbstractPaymentRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, payment: Payment) -> Payment:
        orm_payment = ORMPayment(
            booking_id=payment.booking_id,
            amount=payment.amount,
            provider=payment.provider,
            transaction_id=payment.transaction_id,
            status=payment.status.value,
            currency=payment.currency,
        )
        self.session.add(orm_payment)
        await self.session.flush()
        payment.id = orm_payment.id
        return payment

    async def get_by_booking_id(self, booking_id: int) -> Optional[Payment]:
        result = await self.session.execute(select(ORMPayment).where(ORMPayment.booking_id == booking_id))
        orm_payment = result.scalars().first()
        if orm_payment:
            return Payment(
                id=orm_payment.id,
                booking_id=orm_payment.booking_id,
                amount=orm_payment.amount,
                provider=orm_payment.provider,
                transaction_id=orm_payment.transaction_id,
                status=PaymentStatus(orm_payment.status),
                currency=orm_payment.currency,
                created_at=orm_payment.created_at,
            )
        return None


class SQLAlchemyParkingSessionRepository(AbstractParkingSessionRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, session: ParkingSession) -> ParkingSession:
        orm_session = ORMParkingSession(
            booking_id=session.booking_id,
            location_id=session.location_id,
            status=session.status.value,
            check_in_time=session.check_in_time,
            check_out_time=session.check_out_time,
        )
        self.session.add(orm_session)
        await self.session.flush()
        return _to_session(orm_session)

    async def get_by_id(self, session_id: int) -> Optional[ParkingSession]:
        result = await self.session.execute(select(ORMParkingSession).where(ORMParkingSession.id == session_id))
        orm_session = result.scalars().first()
        if orm_session:
            return _to_session(orm_session)
        return None

    async def get_by_booking_id(self, booking_id: int) -> Optional[ParkingSession]:
        result = await self.session.execute(
            select(ORMParkingSession).where(ORMParkingSession.booking_id == booking_id)
        )
        orm_session = result.scalars().first()
        if orm_session:
            return _to_session(orm_session)
        return None

    async def update(self, session: ParkingSession) -> ParkingSession:
        orm_session = await self.session.get(ORMParkingSession, session.id)
        if orm_session:
            orm_session.status = session.status.value
            orm_session.check_in_time = session.check_in_time
            orm_session.check_out_time = session.check_out_time
            await self.session.flush()
            return _to_session(orm_session)
        raise ValueError(f"Parking session with ID {session.id} not found.")


class SQLAlchemyPromotionRepository(AbstractPromotionRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, orm_promotion: ORMPromotion) -> Promotion:
        return Promotion(
            id=orm_promotion.id,
            code=orm_promotion.code,
            type=orm_promotion.type,
            value=orm_promotion.value,
            is_active=orm_promotion.is_active,
            valid_from=orm_promotion.valid_from,
            valid_until=orm_promotion.valid_until,
            used_count=orm_promotion.used_count,
            usage_limit=orm_promotion.usage_limit,
            max_discount=orm_promotion.max_discount,
        )

    async def get_by_code(self, code: str) -> Optional[Promotion]:
        result = await self.session.execute(select(ORMPromotion).where(ORMPromotion.code == code.upper()))
        orm_promotion = result.scalars().first()
        if orm_promotion:
            return self._to_entity(orm_promotion)
        return None

    async def increment_usage(self, promotion_id: int) -> Promotion:
        orm_promotion = await self.session.get(ORMPromotion, promotion_id)
        if orm_promotion:
            orm_promotion.used_count = (orm_promotion.used_count or 0) + 1
            await self.session.flush()
            return self._to_entity(orm_promotion)
        raise ValueError(f"Promotion with ID {promotion_id} not found.")


class SQLAlchemyCommissionRuleRepository(AbstractCommissionRuleRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_active(self) -> Optional[CommissionRule]:
        result = await self.session.execute(
            select(ORMCommissionRule)
            .where(ORMCommissionRule.is_active == True)  # noqa: E712
            .order_by(desc(ORMCommissionRule.created_at), desc(ORMCommissionRule.id))
        )
        orm_rule = result.scalars().first()
        if orm_rule:
            return CommissionRule(
                id=orm_rule.id,
                type=orm_rule.type,
                value=orm_rule.value,
                is_active=orm_rule.is_active,
                max_commission=orm_rule.max_commission,
            )
        return None


class SQLAlchemyRefundRequestRepository(AbstractRefundRequestRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, refund: RefundRequest) -> RefundRequest:
        orm_refund = ORMRefundRequest(
            booking_id=refund.booking_id,
            amount=refund.amount,
            approved_amount=refund.approved_amount,
            reason=refund.reason,
            status=refund.status.value,
            requires_manual_review=refund.requires_manual_review,
        )
        self.session.add(orm_refund)
        await self.session.flush()
        await self.session.refresh(orm_refund)
        return _to_refund(orm_refund)

    async def get_by_id(self, refund_id: int, for_update: bool = False) -> Optional[RefundRequest]:
        query = select(ORMRefundRequest).where(ORMRefundRequest.id == refund_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(query)
        orm_refund = result.scalars().first()
        if orm_refund:
            return _to_refund(orm_refund)
        return None

    async def update(self, refund: RefundRequest) -> RefundRequest:
        orm_refund = await self.session.get(ORMRefundRequest, refund.id)
        if orm_refund:
            orm_refund.status = refund.status.value
            orm_refund.approved_amount = refund.approved_amount
            orm_refund.processed_by = refund.processed_by
            orm_refund.processed_at = refund.processed_at
            orm_refund.notes = refund.notes
            await self.session.flush()
            return _to_refund(orm_refund)
        raise ValueError(f"Refund request with ID {refund.id} not found.")


class SQLAlchemyBookingRequestRepository(AbstractBookingRequestRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, request: BookingRequest) -> BookingRequest:
        orm_request = ORMBookingRequest(
            location_id=request.location_id,
            request_type=request.request_type.value,
            customer_id=request.customer_id,
            customer_name=request.customer_name,
            customer_phone=request.customer_phone,
            vehicle_plate=request.vehicle_plate,
            vehicle_type=request.vehicle_type,
            vehicle_make=request.vehicle_make,
            vehicle_model=request.vehicle_model,
            vehicle_color=request.vehicle_color,
            requested_start=request.requested_start,
            requested_end=request.requested_end,
            estimated_amount=request.estimated_amount,
            requested_by=request.requested_by,
            status=request.status.value,
            original_booking_id=request.original_booking_id,
        )
        self.session.add(orm_request)
        await self.session.flush()
        return _to_request(orm_request)

    async def get_by_id(self, request_id: int, for_update: bool = False) -> Optional[BookingRequest]:
        query = select(ORMBookingRequest).where(ORMBookingRequest.id == request_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(query)
        orm_request = result.scalars().first()
        if orm_request:
            return _to_request(orm_request)
        return None

    async def update(self, request: BookingRequest) -> BookingRequest:
        orm_request = await self.session.get(ORMBookingRequest, request.id)
        if orm_request:
            orm_request.status = request.status.value
            orm_request.booking_id = request.booking_id
            orm_request.processed_by = request.processed_by
            orm_request.processed_at = request.processed_at
            orm_request.rejection_reason = request.rejection_reason
            await self.session.flush()
            return _to_request(orm_request)
        raise ValueError(f"Booking request with ID {request.id} not found.")


class SQLAlchemyWalletRepository(AbstractWalletRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_owner_id(self, owner_id: int, for_update: bool = False) -> Optional[Wallet]:
        query = select(ORMWallet).where(ORMWallet.owner_id == owner_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(query)
        orm_wallet = result.scalars().first()
        if orm_wallet:
            return _to_wallet(orm_wallet)
        return None

    async def add(self, wallet: Wallet) -> Wallet:
        orm_wallet = ORMWallet(owner_id=wallet.owner_id, balance=wallet.balance, currency=wallet.currency)
        self.session.add(orm_wallet)
        await self.session.flush()
        return _to_wallet(orm_wallet)

    async def update(self, wallet: Wallet) -> Wallet:
        orm_wallet = await self.session.get(ORMWallet, wallet.id)
        if orm_wallet:
            orm_wallet.balance = wallet.balance
            await self.session.flush()
            return _to_wallet(orm_wallet)
        raise ValueError(f"Wallet with ID {wallet.id} not found.")

    async def add_transaction(self, transaction: WalletTransaction) -> WalletTransaction:
        orm_transaction = ORMWalletTransaction(
            wallet_id=transaction.wallet_id,
            type=transaction.type.value,
            amount=transaction.amount,
            description=transaction.description,
            status=transaction.status,
            reference=transaction.reference,
        )
        self.session.add(orm_transaction)
        await self.session.flush()
        transaction.id = orm_transaction.id
        return transaction

    async def has_transaction(self, wallet_id: int, type: WalletTransactionType, reference: str) -> bool:
        result = await self.session.execute(
            select(func.count(ORMWalletTransaction.id)).where(
                and_(
                    ORMWalletTransaction.wallet_id == wallet_id,
                    ORMWalletTransaction.type == WalletTransactionType(type).value,
                    ORMWalletTransaction.reference == reference,
                )
            )
        )
        return (result.scalar() or 0) > 0


class SQLAlchemyLocationAnalyticsRepository(AbstractLocationAnalyticsRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(self, location_id: int, bookings_delta: int, revenue_delta: Decimal) -> LocationAnalytics:
        result = await self.session.execute(
            select(ORMLocationAnalytics).where(ORMLocationAnalytics.location_id == location_id)
        )
        orm_analytics = result.scalars().first()
        if orm_analytics is None:
            orm_analytics = ORMLocationAnalytics(location_id=location_id, total_bookings=0, revenue=Decimal("0.00"))
            self.session.add(orm_analytics)

        orm_analytics.total_bookings = (orm_analytics.total_bookings or 0) + bookings_delta
        orm_analytics.revenue = (orm_analytics.revenue or Decimal("0.00")) + revenue_delta
        await self.session.flush()
        return LocationAnalytics(
            id=orm_analytics.id,
            location_id=orm_analytics.location_id,
            total_bookings=orm_analytics.total_bookings,
            revenue=orm_analytics.revenue,
        )
