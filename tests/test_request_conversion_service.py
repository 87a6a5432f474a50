from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from freezegun import freeze_time

from parkmarket.application.services.request_conversion_service import split_customer_name
from parkmarket.domain.common import BookingStatus, RequestStatus
from parkmarket.domain.errors import (
    InvalidDateRange,
    InvalidRequestState,
    InvalidStateTransition,
    LocationUnavailable,
    NoSpotsAvailable,
    RequestNotFound,
)
from parkmarket.infrastructure.persistence.models.models import (
    Booking as BookingModel,
    BookingRequest as BookingRequestModel,
    LocationAnalytics,
    ParkingLocation,
    ParkingSession,
    Payment,
    Wallet,
    WalletTransaction,
)

DAY = timedelta(days=1)
CHECK_IN = datetime(2030, 3, 1, 10, 0, tzinfo=timezone.utc)
CHECK_OUT = CHECK_IN + 2 * DAY


class TestSplitCustomerName:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("Ana Maria Lopez", ("Ana", "Maria Lopez")),
            ("  Bo   Diddley ", ("Bo", "Diddley")),
            ("Cher", ("Cher", "Customer")),
            ("", ("Guest", "Customer")),
            (None, ("Guest", "Customer")),
        ],
    )
    def test_split(self, name, expected):
        assert split_customer_name(name) == expected


class TestWalkInConversion:
    @freeze_time("2030-03-01 12:00:00")
    async def test_walk_in_becomes_checked_in_confirmed_booking(
        self, conversion_service, make_request, location, owner, fetch, fetch_all, notifier, dispatcher
    ):
        request = await make_request()

        result = await conversion_service.convert_request_to_booking(request.id, staff_id=900)
        await dispatcher.drain()

        booking = result.booking
        assert booking.status == BookingStatus.CONFIRMED
        assert booking.total_price == Decimal("40.00")
        assert booking.taxes == Decimal("4.80")
        assert booking.fees == Decimal("0.00")
        assert booking.commission == Decimal("6.00")
        assert booking.owner_earnings == Decimal("34.00")
        assert booking.guest_first_name == "Ana"
        assert booking.guest_last_name == "Maria Lopez"
        assert booking.vehicle_make == "Other"
        assert booking.vehicle_model == "Other"
        assert booking.vehicle_color == "Other"
        assert booking.vehicle_plate == "WLK 42"
        assert booking.confirmation_code.startswith("PK-")

        assert result.request.status == RequestStatus.APPROVED
        stored_request = await fetch(BookingRequestModel, request.id)
        assert stored_request.status == "APPROVED"
        assert stored_request.booking_id == booking.id
        assert stored_request.processed_by == 900
        assert stored_request.processed_at == datetime(2030, 3, 1, 12, 0, tzinfo=timezone.utc)

        session = (await fetch_all(ParkingSession, ParkingSession.booking_id == booking.id))[0]
        assert session.status == "checked_in"
        assert session.check_in_time == datetime(2030, 3, 1, 12, 0, tzinfo=timezone.utc)

        payment = (await fetch_all(Payment, Payment.booking_id == booking.id))[0]
        assert payment.provider == "on_site"
        assert payment.status == "PENDING"
        assert payment.amount == Decimal("40.00")

        wallet = (await fetch_all(Wallet, Wallet.owner_id == owner.id))[0]
        assert wallet.balance == Decimal("34.00")
        transactions = await fetch_all(WalletTransaction, WalletTransaction.wallet_id == wallet.id)
        assert [t.reference for t in transactions] == [str(booking.id)]

        assert (await fetch(ParkingLocation, location.id)).available_spots == 0
        analytics = (await fetch_all(LocationAnalytics, LocationAnalytics.location_id == location.id))[0]
        assert analytics.total_bookings == 1
        assert analytics.revenue == Decimal("40.00")

        notifier.assert_awaited_once()
        event, payload = notifier.await_args.args
        assert event == "request.approved"
        assert payload["booking_id"] == booking.id

    @freeze_time("2030-03-01 12:00:00")
    async def test_request_converts_only_once(self, conversion_service, make_request, count_rows):
        request = await make_request()
        await conversion_service.convert_request_to_booking(request.id, staff_id=900)

        with pytest.raises(InvalidRequestState):
            await conversion_service.convert_request_to_booking(request.id, staff_id=901)

        assert await count_rows(BookingModel) == 1
        assert await count_rows(Payment) == 1

    @freeze_time("2030-02-20 08:00:00")
    async def test_future_walk_in_waits_for_arrival(self, conversion_service, make_request, fetch_all):
        request = await make_request()

        result = await conversion_service.convert_request_to_booking(request.id, staff_id=900)

        session = (await fetch_all(ParkingSession, ParkingSession.booking_id == result.booking.id))[0]
        assert session.status == "pending"
        assert session.check_in_time is None

    async def test_keeps_vehicle_details_when_given(self, conversion_service, make_request):
        request = await make_request(vehicle_make="Honda", vehicle_model="Civic", vehicle_color="Red", customer_id=33)

        result = await conversion_service.convert_request_to_booking(request.id, staff_id=900)

        assert result.booking.vehicle_make == "Honda"
        assert result.booking.vehicle_color == "Red"
        assert result.booking.user_id == 33

    async def test_full_location_rejects_conversion(
        self, conversion_service, booking_service, make_request, location, make_intent, fetch
    ):
        await booking_service.create_booking(make_intent(location.id))
        request = await make_request()

        with pytest.raises(NoSpotsAvailable):
            await conversion_service.convert_request_to_booking(request.id, staff_id=900)

        assert (await fetch(BookingRequestModel, request.id)).status == "PENDING"

    async def test_inactive_location(self, conversion_service, make_location, make_request):
        lot = await make_location(status="INACTIVE")
        request = await make_request(location_id=lot.id)

        with pytest.raises(LocationUnavailable):
            await conversion_service.convert_request_to_booking(request.id, staff_id=900)

    async def test_unknown_request(self, conversion_service, location):
        with pytest.raises(RequestNotFound):
            await conversion_service.convert_request_to_booking(4040, staff_id=900)


class TestExtensionRequest:
    async def _confirmed_booking(self, booking_service, location, make_intent):
        booking = await booking_service.create_booking(make_intent(location.id))
        return await booking_service.approve_booking(booking.id)

    async def test_extension_adds_amount_and_checks_in(
        self, conversion_service, booking_service, make_request, location, make_intent, fetch, fetch_all
    ):
        booking = await self._confirmed_booking(booking_service, location, make_intent)
        request = await make_request(
            request_type="EXTENSION",
            original_booking_id=booking.id,
            requested_start=CHECK_OUT,
            requested_end=CHECK_OUT + DAY,
            estimated_amount=Decimal("60.00"),
        )

        result = await conversion_service.handle_extension_request(request.id, staff_id=900)

        assert result.booking.id == booking.id
        assert result.booking.check_out == CHECK_OUT + DAY
        assert result.booking.total_price == booking.total_price + Decimal("60.00")

        stored = await fetch(BookingModel, booking.id)
        assert stored.total_price == Decimal("177.99")
        assert stored.status == "CONFIRMED"

        stored_request = await fetch(BookingRequestModel, request.id)
        assert stored_request.status == "APPROVED"
        assert stored_request.booking_id == booking.id

        session = (await fetch_all(ParkingSession, ParkingSession.booking_id == booking.id))[0]
        assert session.status == "checked_in"
        assert session.check_in_time is not None

        analytics = (await fetch_all(LocationAnalytics, LocationAnalytics.location_id == location.id))[0]
        assert analytics.total_bookings == 1
        assert analytics.revenue == Decimal("177.99")

    async def test_extension_must_end_later(
        self, conversion_service, booking_service, make_request, location, make_intent
    ):
        booking = await self._confirmed_booking(booking_service, location, make_intent)
        request = await make_request(
            request_type="EXTENSION",
            original_booking_id=booking.id,
            requested_start=CHECK_IN,
            requested_end=CHECK_OUT,
        )

        with pytest.raises(InvalidDateRange):
            await conversion_service.handle_extension_request(request.id, staff_id=900)

    async def test_pending_booking_cannot_be_extended(
        self, conversion_service, booking_service, make_request, location, make_intent
    ):
        booking = await booking_service.create_booking(make_intent(location.id))
        request = await make_request(
            request_type="EXTENSION",
            original_booking_id=booking.id,
            requested_start=CHECK_OUT,
            requested_end=CHECK_OUT + DAY,
        )

        with pytest.raises(InvalidStateTransition):
            await conversion_service.handle_extension_request(request.id, staff_id=900)

    async def test_extension_collides_with_next_booking(
        self, conversion_service, booking_service, make_request, location, make_intent, fetch
    ):
        booking = await self._confirmed_booking(booking_service, location, make_intent)
        await booking_service.create_booking(
            make_intent(location.id, check_in=CHECK_OUT, check_out=CHECK_OUT + 2 * DAY, user_id=8)
        )
        request = await make_request(
            request_type="EXTENSION",
            original_booking_id=booking.id,
            requested_start=CHECK_OUT,
            requested_end=CHECK_OUT + DAY,
        )

        with pytest.raises(NoSpotsAvailable):
            await conversion_service.handle_extension_request(request.id, staff_id=900)

        assert (await fetch(BookingModel, booking.id)).check_out == CHECK_OUT

    async def test_walk_in_is_not_an_extension(self, conversion_service, make_request):
        request = await make_request()

        with pytest.raises(InvalidRequestState):
            await conversion_service.handle_extension_request(request.id, staff_id=900)

    @pytest.mark.parametrize("request_type", ["EXTENSION", "WALK_IN"])
    async def test_request_for_existing_booking_does_not_create_another(
        self, conversion_service, booking_service, make_request, location, make_intent, owner,
        fetch, fetch_all, count_rows, request_type
    ):
        booking = await self._confirmed_booking(booking_service, location, make_intent)
        request = await make_request(
            request_type=request_type,
            original_booking_id=booking.id,
            requested_start=CHECK_OUT,
            requested_end=CHECK_OUT + DAY,
        )

        with pytest.raises(InvalidRequestState):
            await conversion_service.convert_request_to_booking(request.id, staff_id=900)

        assert await count_rows(BookingModel) == 1
        assert (await fetch(BookingRequestModel, request.id)).status == "PENDING"
        assert (await fetch(BookingModel, booking.id)).check_out == CHECK_OUT
        wallet = (await fetch_all(Wallet, Wallet.owner_id == owner.id))[0]
        assert wallet.balance == Decimal("85.00")

    async def test_other_request_types_are_not_converted(self, conversion_service, make_request, count_rows):
        request = await make_request(request_type="EARLY_CHECKOUT")

        with pytest.raises(InvalidRequestState):
            await conversion_service.convert_request_to_booking(request.id, staff_id=900)

        assert await count_rows(BookingModel) == 0


class TestRejectRequest:
    async def test_reject_then_convert(self, conversion_service, make_request, fetch, count_rows):
        request = await make_request()

        rejected = await conversion_service.reject_request(request.id, staff_id=900, reason="  lot closed  ")

        assert rejected.status == RequestStatus.REJECTED
        stored = await fetch(BookingRequestModel, request.id)
        assert stored.status == "REJECTED"
        assert stored.rejection_reason == "lot closed"
        assert stored.processed_by == 900

        with pytest.raises(InvalidRequestState):
            await conversion_service.convert_request_to_booking(request.id, staff_id=900)
        assert await count_rows(BookingModel) == 0

    async def test_reason_is_required(self, conversion_service, make_request, fetch):
        request = await make_request()

        with pytest.raises(InvalidRequestState):
            await conversion_service.reject_request(request.id, staff_id=900, reason="   ")

        assert (await fetch(BookingRequestModel, request.id)).status == "PENDING"
