from loguru import logger

from parkmarket.application.services import booking_effects
from parkmarket.application.unit_of_work import AbstractUnitOfWork
from parkmarket.config.settings_env import Settings, settings
from parkmarket.domain.common import BookingStatus, SessionStatus
from parkmarket.domain.entities import ParkingSession
from parkmarket.domain.errors import BookingNotFound, InvalidStateTransition, SessionNotFound
from parkmarket.domain.state_machine import ensure_session_transition
from parkmarket.shared.utils import utcnow


class SessionService:
    """Staff check-in and check-out of a booked vehicle."""

    def __init__(self, uow: AbstractUnitOfWork, config: Settings = settings):
        self.uow = uow
        self.config = config

    async def check_in(self, session_id: int, staff_id: int) -> ParkingSession:
        async with self.uow:
            session = await self._get_session(session_id)
            ensure_session_transition(session.status, SessionStatus.CHECKED_IN)

            booking = await self.uow.bookings.get_by_id(session.booking_id)
            if booking is None:
                raise BookingNotFound(f"Booking {session.booking_id} not found.")
            if booking.status != BookingStatus.CONFIRMED:
                raise InvalidStateTransition(
                    f"Booking {booking.confirmation_code} is {booking.status.value}; only confirmed bookings check in."
                )

            session.status = SessionStatus.CHECKED_IN
            session.check_in_time = utcnow()
            session = await self.uow.sessions.update(session)
            await self.uow.commit()

        logger.info(f"Session {session_id} checked in by staff {staff_id} (booking {booking.confirmation_code})")
        return session

    async def check_out(self, session_id: int, staff_id: int) -> ParkingSession:
        """Close the session and complete the booking, freeing its spot."""
        async with self.uow:
            session = await self._get_session(session_id)
            ensure_session_transition(session.status, SessionStatus.CHECKED_OUT)

            booking = await self.uow.bookings.get_by_id(session.booking_id)
            if booking is None:
                raise BookingNotFound(f"Booking {session.booking_id} not found.")
            location = await self.uow.locations.get_by_id(booking.location_id, for_update=True)
            booking = await self.uow.bookings.get_by_id(booking.id, for_update=True)

            await booking_effects.complete_booking(self.uow, booking, location, self.config.CURRENCY)

            session.status = SessionStatus.CHECKED_OUT
            session.check_out_time = utcnow()
            session = await self.uow.sessions.update(session)
            await self.uow.commit()

        logger.info(f"Session {session_id} checked out by staff {staff_id} (booking {booking.confirmation_code})")
        return session

    async def _get_session(self, session_id: int) -> ParkingSession:
        session = await self.uow.sessions.get_by_id(session_id)
        if session is None:
            raise SessionNotFound(f"Parking session {session_id} not found.")
        return session
