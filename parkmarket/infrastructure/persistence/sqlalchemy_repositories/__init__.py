from .sqlalchemy_repositories import (
    SQLAlchemyLocationRepository,
    SQLAlchemyBookingRepository,
    SQLAlchemyPaymentRepository,
    SQLAlchemyParkingSessionRepository,
    SQLAlchemyPromotionRepository,
    SQLAlchemyCommissionRuleRepository,
    SQLAlchemyRefundRequestRepository,
    SQLAlchemyBookingRequestRepository,
    SQLAlchemyWalletRepository,
    SQLAlchemyLocationAnalyticsRepository,
)

__all__ = [
    "SQLAlchemyLocationRepository",
    "SQLAlchemyBookingRepository",
    "SQLAlchemyPaymentRepository",
    "SQLAlchemyParkingSessionRepository",
    "SQLAlchemyPromotionRepository",
    "SQLAlchemyCommissionRuleRepository",
    "SQLAlchemyRefundRequestRepository",
    "SQLAlchemyBookingRequestRepository",
    "SQLAlchemyWalletRepository",
    "SQLAlchemyLocationAnalyticsRepository",
]
