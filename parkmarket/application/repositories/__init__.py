from .abstract_repositories import (
    AbstractLocationRepository,
    AbstractBookingRepository,
    AbstractPaymentRepository,
    AbstractParkingSessionRepository,
    AbstractPromotionRepository,
    AbstractCommissionRuleRepository,
    AbstractRefundRequestRepository,
    AbstractBookingRequestRepository,
    AbstractWalletRepository,
    AbstractLocationAnalyticsRepository,
)

__all__ = [
    "AbstractLocationRepository",
    "AbstractBookingRepository",
    "AbstractPaymentRepository",
    "AbstractParkingSessionRepository",
    "AbstractPromotionRepository",
    "AbstractCommissionRuleRepository",
    "AbstractRefundRequestRepository",
    "AbstractBookingRequestRepository",
    "AbstractWalletRepository",
    "AbstractLocationAnalyticsRepository",
]
