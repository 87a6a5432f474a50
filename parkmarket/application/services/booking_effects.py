"""Side effects shared by every service that moves a booking between statuses.

All helpers run inside the caller's unit of work and never commit.
"""
from decimal import Decimal
from typing import Optional

from loguru import logger

from parkmarket.application.unit_of_work import AbstractUnitOfWork
from parkmarket.domain.common import BookingStatus, SessionStatus, WalletTransactionType
from parkmarket.domain.confirmation import generate_confirmation_code
from parkmarket.domain.entities import Booking, Location, Wallet, WalletTransaction
from parkmarket.domain.errors import StorageFailure
from parkmarket.domain.state_machine import ensure_transition


async def reserve_spot(uow: AbstractUnitOfWork, location: Location) -> Location:
    location.available_spots = max(0, location.available_spots - 1)
    return await uow.locations.update(location)


async def release_spot(uow: AbstractUnitOfWork, location: Location) -> Location:
    location.available_spots = min(location.total_spots, location.available_spots + 1)
    return await uow.locations.update(location)


async def set_session_status(uow: AbstractUnitOfWork, booking_id: int, status: SessionStatus, **times):
    session = await uow.sessions.get_by_booking_id(booking_id)
    if session is None:
        logger.warning(f"Booking {booking_id} has no parking session to mark {status.value}")
        return None
    session.status = status
    for name, value in times.items():
        setattr(session, name, value)
    return await uow.sessions.update(session)


async def credit_owner(
    uow: AbstractUnitOfWork, booking: Booking, location: Location, currency: str = "USD"
) -> Optional[WalletTransaction]:
    """Credit ``owner_earnings`` to the owner's wallet once per booking.

    Locks the wallet row; it is shared by all of the owner's locations.
    """
    wallet = await uow.wallets.get_by_owner_id(location.owner_id, for_update=True)
    if wallet is None:
        wallet = await uow.wallets.add(Wallet(owner_id=location.owner_id, balance=Decimal("0.00"), currency=currency))

    reference = str(booking.id)
    if await uow.wallets.has_transaction(wallet.id, WalletTransactionType.CREDIT, reference):
        logger.warning(f"Booking {booking.confirmation_code} already credited to wallet {wallet.id}")
        return None

    wallet.balance = wallet.balance + booking.owner_earnings
    await uow.wallets.update(wallet)
    transaction = await uow.wallets.add_transaction(
        WalletTransaction(
            wallet_id=wallet.id,
            type=WalletTransactionType.CREDIT,
            amount=booking.owner_earnings,
            description=f"Earnings for booking {booking.confirmation_code}",
            reference=reference,
        )
    )
    logger.info(f"Credited {booking.owner_earnings} to wallet {wallet.id} for booking {booking.confirmation_code}")
    return transaction


async def debit_owner_refund(
    uow: AbstractUnitOfWork, booking: Booking, location: Location, amount: Decimal
) -> Optional[WalletTransaction]:
    """Take an approved refund back out of the owner's wallet.

    Only bookings whose earnings were credited are debited. The ledger entry
    is a ``REFUND`` transaction with a negative amount.
    """
    if amount <= Decimal("0.00"):
        return None

    wallet = await uow.wallets.get_by_owner_id(location.owner_id, for_update=True)
    reference = str(booking.id)
    if wallet is None or not await uow.wallets.has_transaction(wallet.id, WalletTransactionType.CREDIT, reference):
        logger.info(f"Booking {booking.confirmation_code} was never credited; no refund deduction")
        return None

    wallet.balance = wallet.balance - amount
    await uow.wallets.update(wallet)
    transaction = await uow.wallets.add_transaction(
        WalletTransaction(
            wallet_id=wallet.id,
            type=WalletTransactionType.REFUND,
            amount=-amount,
            description=f"Refund deduction for booking {booking.confirmation_code}",
            reference=reference,
        )
    )
    logger.info(f"Deducted refund {amount} from wallet {wallet.id} for booking {booking.confirmation_code}")
    return transaction


async def confirm_booking(uow: AbstractUnitOfWork, booking: Booking, location: Location, currency: str = "USD") -> Booking:
    ensure_transition(booking.status, BookingStatus.CONFIRMED)
    booking.status = BookingStatus.CONFIRMED
    booking = await uow.bookings.update(booking)
    await credit_owner(uow, booking, location, currency)
    return booking


async def reject_booking(uow: AbstractUnitOfWork, booking: Booking, location: Location, reason: str) -> Booking:
    ensure_transition(booking.status, BookingStatus.REJECTED)
    booking.status = BookingStatus.REJECTED
    booking.rejection_reason = reason
    booking = await uow.bookings.update(booking)
    await release_spot(uow, location)
    await set_session_status(uow, booking.id, SessionStatus.CANCELLED)
    return booking


async def cancel_booking(uow: AbstractUnitOfWork, booking: Booking, location: Location, reason: str) -> Booking:
    ensure_transition(booking.status, BookingStatus.CANCELLED)
    booking.status = BookingStatus.CANCELLED
    booking.cancellation_reason = reason
    booking = await uow.bookings.update(booking)
    await release_spot(uow, location)
    await set_session_status(uow, booking.id, SessionStatus.CANCELLED)
    await uow.analytics.record(location.id, bookings_delta=0, revenue_delta=-booking.total_price)
    return booking


async def complete_booking(uow: AbstractUnitOfWork, booking: Booking, location: Location, currency: str = "USD") -> Booking:
    ensure_transition(booking.status, BookingStatus.COMPLETED)
    booking.status = BookingStatus.COMPLETED
    booking = await uow.bookings.update(booking)
    await release_spot(uow, location)
    await credit_owner(uow, booking, location, currency)
    return booking


async def new_confirmation_code(uow: AbstractUnitOfWork, prefix: str = "PK", attempts: int = 5) -> str:
    for _ in range(attempts):
        code = generate_confirmation_code(prefix)
        if not await uow.bookings.confirmation_code_exists(code):
            return code
    raise StorageFailure("Could not allocate a unique confirmation code.")
