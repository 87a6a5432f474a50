from decimal import Decimal
from typing import NamedTuple, Optional, Tuple

from loguru import logger

from parkmarket.application.notifications import NotificationDispatcher
from parkmarket.application.services import booking_effects
from parkmarket.application.unit_of_work import AbstractUnitOfWork
from parkmarket.config.settings_env import Settings, settings
from parkmarket.domain.availability import has_capacity, validate_date_range
from parkmarket.domain.common import BookingStatus, PaymentStatus, RequestStatus, RequestType, SessionStatus
from parkmarket.domain.entities import Booking, BookingRequest, ParkingSession, Payment
from parkmarket.domain.errors import (
    BookingNotFound,
    InvalidDateRange,
    InvalidRequestState,
    InvalidStateTransition,
    LocationUnavailable,
    NoSpotsAvailable,
    RequestNotFound,
)
from parkmarket.domain.pricing import compute_commission, round_money
from parkmarket.shared.utils import ensure_aware, utcnow

PLACEHOLDER_VEHICLE_DETAIL = "Other"


class ConversionResult(NamedTuple):
    request: BookingRequest
    booking: Booking


def split_customer_name(customer_name: str) -> Tuple[str, str]:
    """Split on the first whitespace; ``"Ana Maria Lopez"`` -> ``("Ana", "Maria Lopez")``."""
    parts = (customer_name or "").strip().split(None, 1)
    first_name = parts[0] if parts else ""
    last_name = parts[1].strip() if len(parts) > 1 else ""
    return first_name or "Guest", last_name or "Customer"


class RequestConversionService:
    """Turns staff-originated booking requests into bookings.

    Walk-ins become confirmed bookings directly; extensions grow an existing
    confirmed booking. A request is converted at most once.
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

    async def convert_request_to_booking(self, request_id: int, staff_id: int) -> ConversionResult:
        async with self.uow:
            request = await self._get_pending_request(request_id)
            if request.request_type != RequestType.WALK_IN or request.original_booking_id is not None:
                raise InvalidRequestState(
                    f"Request {request_id} is a {request.request_type.value} request; only walk-ins become new bookings."
                )
            if request.booking_id is not None:
                raise InvalidRequestState(f"Request {request_id} was already converted to booking {request.booking_id}.")
            validate_date_range(request.requested_start, request.requested_end)

            location = await self.uow.locations.get_by_id(request.location_id, for_update=True)
            if location is None or not location.is_active:
                raise LocationUnavailable(f"Parking location {request.location_id} is not accepting bookings.")
            overlapping = await self.uow.bookings.count_overlapping(
                location.id, request.requested_start, request.requested_end
            )
            if not has_capacity(location.total_spots, overlapping):
                logger.warning(f"Request {request_id}: location {location.id} is full")
                raise NoSpotsAvailable()

            amount = round_money(request.estimated_amount)
            commission = compute_commission(
                await self.uow.commission_rules.get_active(), amount, self.config.DEFAULT_COMMISSION_RATE
            )
            first_name, last_name = split_customer_name(request.customer_name)
            confirmation_code = await booking_effects.new_confirmation_code(
                self.uow, self.config.CONFIRMATION_CODE_PREFIX, self.config.CONFIRMATION_CODE_ATTEMPTS
            )

            booking = await self.uow.bookings.add(
                Booking(
                    user_id=request.customer_id,
                    location_id=location.id,
                    check_in=request.requested_start,
                    check_out=request.requested_end,
                    guest_first_name=first_name,
                    guest_last_name=last_name,
                    guest_email="",
                    guest_phone=request.customer_phone or "",
                    vehicle_make=request.vehicle_make or PLACEHOLDER_VEHICLE_DETAIL,
                    vehicle_model=request.vehicle_model or PLACEHOLDER_VEHICLE_DETAIL,
                    vehicle_color=request.vehicle_color or PLACEHOLDER_VEHICLE_DETAIL,
                    vehicle_plate=request.vehicle_plate.strip().upper(),
                    total_price=amount,
                    taxes=round_money(amount * Decimal(str(self.config.WALK_IN_TAX_RATE))),
                    fees=round_money(0),
                    commission=commission,
                    owner_earnings=amount - commission,
                    status=BookingStatus.CONFIRMED,
                    confirmation_code=confirmation_code,
                )
            )
            await booking_effects.credit_owner(self.uow, booking, location, self.config.CURRENCY)
            await self.uow.payments.add(
                Payment(
                    booking_id=booking.id,
                    amount=amount,
                    provider="on_site",
                    status=PaymentStatus.PENDING,
                    currency=self.config.CURRENCY,
                )
            )

            now = utcnow()
            auto_check_in = ensure_aware(request.requested_start) <= now
            await self.uow.sessions.add(
                ParkingSession(
                    booking_id=booking.id,
                    location_id=location.id,
                    status=SessionStatus.CHECKED_IN if auto_check_in else SessionStatus.PENDING,
                    check_in_time=now if auto_check_in else None,
                )
            )

            request.status = RequestStatus.APPROVED
            request.booking_id = booking.id
            request.processed_by = staff_id
            request.processed_at = now
            request = await self.uow.requests.update(request)

            await booking_effects.reserve_spot(self.uow, location)
            await self.uow.analytics.record(location.id, bookings_delta=1, revenue_delta=amount)
            await self.uow.commit()

        logger.info(
            f"Request {request.id} converted to booking {booking.confirmation_code} by staff {staff_id}"
            f"{' (checked in)' if auto_check_in else ''}"
        )
        self.dispatcher.dispatch(
            "request.approved", request_id=request.id, booking_id=booking.id, owner_id=location.owner_id
        )
        return ConversionResult(request=request, booking=booking)

    async def handle_extension_request(self, request_id: int, staff_id: int) -> ConversionResult:
        async with self.uow:
            request = await self._get_pending_request(request_id)
            if request.request_type != RequestType.EXTENSION or request.original_booking_id is None:
                raise InvalidRequestState(f"Request {request_id} is not an extension of an existing booking.")

            original = await self.uow.bookings.get_by_id(request.original_booking_id)
            if original is None:
                raise BookingNotFound(f"Booking {request.original_booking_id} not found.")
            location = await self.uow.locations.get_by_id(original.location_id, for_update=True)
            booking = await self.uow.bookings.get_by_id(original.id, for_update=True)

            if booking.status != BookingStatus.CONFIRMED:
                raise InvalidStateTransition(
                    f"Only confirmed bookings can be extended; booking {booking.id} is {booking.status.value}."
                )
            if ensure_aware(request.requested_end) <= ensure_aware(booking.check_out):
                raise InvalidDateRange("Extension must end after the current check-out.")

            overlapping = await self.uow.bookings.count_overlapping(
                location.id, booking.check_out, request.requested_end, exclude_booking_id=booking.id
            )
            if not has_capacity(location.total_spots, overlapping):
                logger.warning(f"Extension {request_id}: location {location.id} is full after {booking.check_out}")
                raise NoSpotsAvailable()

            amount = round_money(request.estimated_amount)
            booking.check_out = request.requested_end
            booking.total_price = booking.total_price + amount
            booking = await self.uow.bookings.update(booking)

            session = await self.uow.sessions.get_by_booking_id(booking.id)
            if session is not None and session.status != SessionStatus.CANCELLED:
                session.status = SessionStatus.CHECKED_IN
                if session.check_in_time is None:
                    session.check_in_time = utcnow()
                await self.uow.sessions.update(session)

            request.status = RequestStatus.APPROVED
            request.booking_id = booking.id
            request.processed_by = staff_id
            request.processed_at = utcnow()
            request = await self.uow.requests.update(request)

            await self.uow.analytics.record(location.id, bookings_delta=0, revenue_delta=amount)
            await self.uow.commit()

        logger.info(f"Booking {booking.confirmation_code} extended to {booking.check_out} by staff {staff_id}")
        self.dispatcher.dispatch(
            "booking.extended", request_id=request.id, booking_id=booking.id, user_id=booking.user_id
        )
        return ConversionResult(request=request, booking=booking)

    async def reject_request(self, request_id: int, staff_id: int, reason: str) -> BookingRequest:
        if not reason or not reason.strip():
            raise InvalidRequestState("A rejection reason is required.")

        async with self.uow:
            request = await self._get_pending_request(request_id)
            request.status = RequestStatus.REJECTED
            request.rejection_reason = reason.strip()
            request.processed_by = staff_id
            request.processed_at = utcnow()
            request = await self.uow.requests.update(request)
            await self.uow.commit()

        logger.info(f"Request {request_id} rejected by staff {staff_id}: {reason}")
        return request

    async def _get_pending_request(self, request_id: int) -> BookingRequest:
        request = await self.uow.requests.get_by_id(request_id, for_update=True)
        if request is None:
            raise RequestNotFound(f"Booking request {request_id} not found.")
        if request.status != RequestStatus.PENDING:
            raise InvalidRequestState(f"Request {request_id} is {request.status.value}, not PENDING.")
        return request
