from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from loguru import logger

from parkmarket.application.unit_of_work import AbstractUnitOfWork
from parkmarket.domain.errors import StorageFailure
from parkmarket.infrastructure.persistence.sqlalchemy_repositories import (
    SQLAlchemyBookingRepository,
    SQLAlchemyBookingRequestRepository,
    SQLAlchemyCommissionRuleRepository,
    SQLAlchemyLocationAnalyticsRepository,
    SQLAlchemyLocationRepository,
    SQLAlchemyParkingSessionRepository,
    SQLAlchemyPaymentRepository,
    SQLAlchemyPromotionRepository,
    SQLAlchemyRefundRequestRepository,
    SQLAlchemyWalletRepository,
)


class SQLAlchemyUnitOfWork(AbstractUnitOfWork):
    """Unit of work backed by one ``AsyncSession``.

    Driver and constraint errors surface as :class:`StorageFailure` after the
    transaction has been rolled back.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory
        self.session = None

    async def __aenter__(self):
        self.session = self.session_factory()

        self.locations = SQLAlchemyLocationRepository(self.session)
        self.bookings = SQLAlchemyBookingRepository(self.session)
        self.payments = SQLAlchemyPaymentRepository(self.session)
        self.sessions = SQLAlchemyParkingSessionRepository(self.session)
        self.promotions = SQLAlchemyPromotionRepository(self.session)
        self.commission_rules = SQLAlchemyCommissionRuleRepository(self.session)
        self.refunds = SQLAlchemyRefundRequestRepository(self.session)
        self.requests = SQLAlchemyBookingRequestRepository(self.session)
        self.wallets = SQLAlchemyWalletRepository(self.session)
        self.analytics = SQLAlchemyLocationAnalyticsRepository(self.session)

        return await super().__aenter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is not None:
                logger.warning(f"Rolling back unit of work after {exc_type.__name__}: {exc_val}")
            await super().__aexit__(exc_type, exc_val, exc_tb)
        finally:
            await self.session.close()
            self.session = None

        if exc_val is not None and isinstance(exc_val, SQLAlchemyError):
            raise StorageFailure(str(exc_val)) from exc_val

    async def commit(self):
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Commit failed: {e}")
            await self.session.rollback()
            raise StorageFailure(str(e)) from e

    async def rollback(self):
        await self.session.rollback()
