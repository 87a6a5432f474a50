from decimal import Decimal
from typing import Optional

from loguru import logger

from parkmarket.application.services import booking_effects
from parkmarket.application.unit_of_work import AbstractUnitOfWork
from parkmarket.domain.common import RefundStatus
from parkmarket.domain.entities import RefundRequest
from parkmarket.domain.errors import BookingNotFound, InvalidRefundAmount, InvalidStateTransition, RefundNotFound
from parkmarket.domain.pricing import round_money
from parkmarket.shared.utils import utcnow


class RefundService:
    """Administrator review of refund requests opened by cancellations.

    Approving records the decision and takes the amount back out of the
    owner's wallet; paying the guest is handled by the payment provider
    outside this package.
    """

    def __init__(self, uow: AbstractUnitOfWork):
        self.uow = uow

    async def approve_refund(
        self, refund_id: int, admin_id: int, approved_amount: Optional[Decimal] = None, notes: Optional[str] = None
    ) -> RefundRequest:
        """Approve a pending refund and deduct it from the owner's wallet if earnings were credited."""
        async with self.uow:
            refund = await self._get_pending_refund(refund_id)
            booking = await self.uow.bookings.get_by_id(refund.booking_id)
            if booking is None:
                raise BookingNotFound(f"Booking {refund.booking_id} not found.")
            location = await self.uow.locations.get_by_id(booking.location_id, for_update=True)
            refund = await self._get_pending_refund(refund_id, for_update=True)

            if approved_amount is None:
                if refund.requires_manual_review:
                    raise InvalidRefundAmount("This refund needs manual review; an explicit amount is required.")
                approved_amount = refund.amount
            approved_amount = round_money(approved_amount)
            if approved_amount < Decimal("0.00") or approved_amount > booking.total_price:
                raise InvalidRefundAmount(
                    f"Refund amount {approved_amount} is outside 0.00 - {booking.total_price}."
                )

            refund.status = RefundStatus.APPROVED
            refund.approved_amount = approved_amount
            refund.processed_by = admin_id
            refund.processed_at = utcnow()
            refund.notes = notes
            refund = await self.uow.refunds.update(refund)
            if location is not None:
                await booking_effects.debit_owner_refund(self.uow, booking, location, approved_amount)
            await self.uow.commit()

        logger.info(f"Refund {refund_id} approved by admin {admin_id}: {approved_amount}")
        return refund

    async def reject_refund(self, refund_id: int, admin_id: int, notes: Optional[str] = None) -> RefundRequest:
        async with self.uow:
            refund = await self._get_pending_refund(refund_id, for_update=True)
            refund.status = RefundStatus.REJECTED
            refund.processed_by = admin_id
            refund.processed_at = utcnow()
            refund.notes = notes
            refund = await self.uow.refunds.update(refund)
            await self.uow.commit()

        logger.info(f"Refund {refund_id} rejected by admin {admin_id}")
        return refund

    async def _get_pending_refund(self, refund_id: int, for_update: bool = False) -> RefundRequest:
        refund = await self.uow.refunds.get_by_id(refund_id, for_update=for_update)
        if refund is None:
            raise RefundNotFound(f"Refund request {refund_id} not found.")
        if refund.status != RefundStatus.PENDING:
            raise InvalidStateTransition(f"Refund request {refund_id} is already {refund.status.value}.")
        return refund
