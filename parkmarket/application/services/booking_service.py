from datetime import datetime
from typing import NamedTuple, Optional

from loguru import logger

from parkmarket.application.notifications import NotificationDispatcher
from parkmarket.application.services import booking_effects
from parkmarket.application.unit_of_work import AbstractUnitOfWork
from parkmarket.config.settings_env import Settings, settings
from parkmarket.domain.availability import remaining_capacity, validate_date_range
from parkmarket.domain.common import BookingStatus, PaymentStatus, SessionStatus
from parkmarket.domain.entities import Booking, Location, ParkingSession, Payment, RefundRequest
from parkmarket.domain.errors import (
    BookingNotFound,
    LocationUnavailable,
    NoSpotsAvailable,
    PaymentDeclined,
    Unauthorized,
)
from parkmarket.domain.pricing import PriceBreakdown, compute_pricing
from parkmarket.domain.promotions import normalize_code, validate_promotion
from parkmarket.domain.refunds import compute_refund, full_refund, hours_until
from parkmarket.schemas.booking import BookingIntent, PaymentConfirmation, PriceQuote
from parkmarket.shared.utils import utcnow


class CancellationResult(NamedTuple):
    booking: Booking
    refund: RefundRequest


class BookingService:
    """Creates bookings and drives them through owner approval and cancellation.

    Each public operation is a single unit of work: either every write lands
    or none does. Notifications go out only after the commit.
    """

    def __init__(
        self,
        uow: AbstractUnitOfWork,
        dispatcher: Optional[NotificationDispatcher] = None,
        config: Settings = settings,
    ):
        self.uow = uow
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.config = config

    async def create_booking(self, intent: BookingIntent, payment: Optional[PaymentConfirmation] = None) -> Booking:
        validate_date_range(intent.check_in, intent.check_out)
        if payment is not None and not payment.success:
            logger.warning(f"Payment {payment.transaction_id} declined for location {intent.location_id}")
            raise PaymentDeclined(f"Payment {payment.transaction_id} was declined.")

        now = utcnow()
        async with self.uow:
            location = await self._load_bookable_location(intent.location_id)
            await self._ensure_capacity(location, intent.check_in, intent.check_out)

            promotion = None
            if intent.promo_code:
                code = normalize_code(intent.promo_code)
                promotion = validate_promotion(await self.uow.promotions.get_by_code(code), now, code)
            commission_rule = await self.uow.commission_rules.get_active()

            pricing = self._price(location, intent.check_in, intent.check_out, promotion, commission_rule)
            confirmation_code = await booking_effects.new_confirmation_code(
                self.uow, self.config.CONFIRMATION_CODE_PREFIX, self.config.CONFIRMATION_CODE_ATTEMPTS
            )

            booking = await self.uow.bookings.add(
                Booking(
                    user_id=intent.user_id,
                    location_id=location.id,
                    check_in=intent.check_in,
                    check_out=intent.check_out,
                    guest_first_name=intent.guest.first_name,
                    guest_last_name=intent.guest.last_name,
                    guest_email=intent.guest.email,
                    guest_phone=intent.guest.phone,
                    vehicle_make=intent.vehicle.make,
                    vehicle_model=intent.vehicle.model,
                    vehicle_color=intent.vehicle.color,
                    vehicle_plate=intent.vehicle.plate,
                    total_price=pricing.total,
                    taxes=pricing.taxes,
                    fees=pricing.fees,
                    commission=pricing.commission,
                    owner_earnings=pricing.owner_earnings,
                    status=BookingStatus.PENDING,
                    confirmation_code=confirmation_code,
                )
            )

            if promotion is not None:
                await self.uow.promotions.increment_usage(promotion.id)

            await self.uow.payments.add(
                Payment(
                    booking_id=booking.id,
                    amount=booking.total_price,
                    provider=payment.provider if payment else "stripe",
                    transaction_id=payment.transaction_id if payment else None,
                    status=PaymentStatus.SUCCESS if payment else PaymentStatus.PENDING,
                    currency=self.config.CURRENCY,
                )
            )
            await self.uow.sessions.add(
                ParkingSession(booking_id=booking.id, location_id=location.id, status=SessionStatus.RESERVED)
            )
            await self.uow.analytics.record(location.id, bookings_delta=1, revenue_delta=booking.total_price)
            await booking_effects.reserve_spot(self.uow, location)

            if location.instant_booking:
                booking = await booking_effects.confirm_booking(self.uow, booking, location, self.config.CURRENCY)

            await self.uow.commit()

        logger.info(
            f"Booking {booking.confirmation_code} created at location {location.id} "
            f"({booking.status.value}, total {booking.total_price})"
        )
        self.dispatcher.dispatch(
            "booking.created",
            booking_id=booking.id,
            owner_id=location.owner_id,
            confirmation_code=booking.confirmation_code,
            status=booking.status.value,
        )
        return booking

    async def cancel_booking(
        self,
        booking_id: int,
        reason: str,
        requested_by: Optional[int] = None,
        confirmation_code: Optional[str] = None,
    ) -> CancellationResult:
        """Cancel a booking and open a refund request with the suggested amount."""
        async with self.uow:
            booking = await self._get_booking(booking_id)
            self._authorize_cancellation(booking, requested_by, confirmation_code)

            location = await self.uow.locations.get_by_id(booking.location_id, for_update=True)
            booking = await self.uow.bookings.get_by_id(booking_id, for_update=True)

            if booking.status == BookingStatus.PENDING:
                quote = full_refund(booking.total_price)
            else:
                quote = compute_refund(
                    location.cancellation_policy,
                    hours_until(booking.check_in, utcnow()),
                    booking.total_price,
                    default_deadline_hours=self.config.DEFAULT_CANCELLATION_HOURS,
                )

            booking = await booking_effects.cancel_booking(self.uow, booking, location, reason)
            refund = await self.uow.refunds.add(
                RefundRequest(
                    booking_id=booking.id,
                    amount=quote.amount,
                    reason=reason,
                    requires_manual_review=quote.manual_review_required,
                )
            )
            await self.uow.commit()

        logger.info(
            f"Booking {booking.confirmation_code} cancelled; suggested refund {refund.amount}"
            f"{' (manual review)' if refund.requires_manual_review else ''}"
        )
        self.dispatcher.dispatch(
            "booking.cancelled",
            booking_id=booking.id,
            owner_id=location.owner_id,
            refund_amount=str(refund.amount),
        )
        return CancellationResult(booking=booking, refund=refund)

    async def approve_booking(self, booking_id: int, owner_id: Optional[int] = None) -> Booking:
        async with self.uow:
            booking = await self._get_booking(booking_id)
            location = await self._load_owned_location(booking.location_id, owner_id)
            booking = await self.uow.bookings.get_by_id(booking_id, for_update=True)

            booking = await booking_effects.confirm_booking(self.uow, booking, location, self.config.CURRENCY)
            await self.uow.commit()

        logger.info(f"Booking {booking.confirmation_code} approved")
        self.dispatcher.dispatch("booking.confirmed", booking_id=booking.id, user_id=booking.user_id)
        return booking

    async def reject_booking(self, booking_id: int, reason: str, owner_id: Optional[int] = None) -> Booking:
        async with self.uow:
            booking = await self._get_booking(booking_id)
            location = await self._load_owned_location(booking.location_id, owner_id)
            booking = await self.uow.bookings.get_by_id(booking_id, for_update=True)

            booking = await booking_effects.reject_booking(self.uow, booking, location, reason)
            await self.uow.commit()

        logger.info(f"Booking {booking.confirmation_code} rejected: {reason}")
        self.dispatcher.dispatch("booking.rejected", booking_id=booking.id, user_id=booking.user_id, reason=reason)
        return booking

    async def quote(
        self, location_id: int, check_in: datetime, check_out: datetime, promo_code: Optional[str] = None
    ) -> PriceQuote:
        """Price a stay without reserving anything."""
        validate_date_range(check_in, check_out)

        async with self.uow:
            location = await self._load_bookable_location(location_id, for_update=False)
            remaining = await self._ensure_capacity(location, check_in, check_out)

            promotion = None
            if promo_code:
                code = normalize_code(promo_code)
                promotion = validate_promotion(await self.uow.promotions.get_by_code(code), utcnow(), code)
            commission_rule = await self.uow.commission_rules.get_active()

        pricing = self._price(location, check_in, check_out, promotion, commission_rule)
        return PriceQuote(
            location_id=location.id,
            check_in=check_in,
            check_out=check_out,
            days=pricing.days,
            multiplier=pricing.multiplier,
            subtotal_before_discount=pricing.subtotal_before_discount,
            discount=pricing.discount,
            subtotal=pricing.subtotal,
            taxes=pricing.taxes,
            fees=pricing.fees,
            total=pricing.total,
            remaining_spots=remaining,
        )

    async def get_booking(self, booking_id: int) -> Booking:
        async with self.uow:
            return await self._get_booking(booking_id)

    async def get_by_confirmation_code(self, confirmation_code: str) -> Booking:
        async with self.uow:
            booking = await self.uow.bookings.get_by_confirmation_code(confirmation_code)
        if booking is None:
            raise BookingNotFound(f"No booking with confirmation code {confirmation_code}.")
        return booking

    async def _get_booking(self, booking_id: int) -> Booking:
        booking = await self.uow.bookings.get_by_id(booking_id)
        if booking is None:
            raise BookingNotFound(f"Booking {booking_id} not found.")
        return booking

    async def _load_bookable_location(self, location_id: int, for_update: bool = True) -> Location:
        location = await self.uow.locations.get_by_id(location_id, for_update=for_update)
        if location is None or not location.is_active:
            logger.warning(f"Location {location_id} is missing or inactive")
            raise LocationUnavailable(f"Parking location {location_id} is not accepting bookings.")
        return location

    async def _load_owned_location(self, location_id: int, owner_id: Optional[int]) -> Location:
        location = await self.uow.locations.get_by_id(location_id, for_update=True)
        if location is None:
            raise LocationUnavailable(f"Parking location {location_id} no longer exists.")
        if owner_id is not None and location.owner_id != owner_id:
            logger.warning(f"Owner {owner_id} tried to act on location {location_id}")
            raise Unauthorized(f"Owner {owner_id} does not manage location {location_id}.")
        return location

    async def _ensure_capacity(
        self, location: Location, check_in: datetime, check_out: datetime, exclude_booking_id: Optional[int] = None
    ) -> int:
        overlapping = await self.uow.bookings.count_overlapping(location.id, check_in, check_out, exclude_booking_id)
        remaining = remaining_capacity(location.total_spots, overlapping)
        if remaining <= 0:
            logger.warning(f"Location {location.id} sold out for {check_in} - {check_out}")
            raise NoSpotsAvailable()
        return remaining

    def _price(self, location: Location, check_in, check_out, promotion, commission_rule) -> PriceBreakdown:
        return compute_pricing(
            base_price=location.price_per_day,
            rules=location.pricing_rules,
            check_in=check_in,
            check_out=check_out,
            promotion=promotion,
            commission_rule=commission_rule,
            tax_rate=self.config.TAX_RATE,
            service_fee=self.config.SERVICE_FEE,
            default_commission_rate=self.config.DEFAULT_COMMISSION_RATE,
        )

    @staticmethod
    def _authorize_cancellation(booking: Booking, requested_by: Optional[int], confirmation_code: Optional[str]):
        if booking.user_id is not None and requested_by == booking.user_id:
            return
        if booking.user_id is None and confirmation_code and normalize_code(confirmation_code) == booking.confirmation_code:
            return
        raise Unauthorized(f"Not allowed to cancel booking {booking.id}.")
