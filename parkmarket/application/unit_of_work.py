from abc import ABC, abstractmethod

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


class AbstractUnitOfWork(ABC):
    """One storage transaction shared by every repository.

    ``async with uow:`` opens the transaction; leaving the block without
    ``commit()`` rolls it back. A unit of work may be entered again after it
    exits but never concurrently.
    """

    locations: AbstractLocationRepository
    bookings: AbstractBookingRepository
    payments: AbstractPaymentRepository
    sessions: AbstractParkingSessionRepository
    promotions: AbstractPromotionRepository
    commission_rules: AbstractCommissionRuleRepository
    refunds: AbstractRefundRequestRepository
    requests: AbstractBookingRequestRepository
    wallets: AbstractWalletRepository
    analytics: AbstractLocationAnalyticsRepository

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.rollback()

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass
