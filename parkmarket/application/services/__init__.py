from .booking_service import BookingService, CancellationResult
from .request_conversion_service import ConversionResult, RequestConversionService
from .session_service import SessionService
from .refund_service import RefundService

__all__ = [
    "BookingService",
    "CancellationResult",
    "ConversionResult",
    "RequestConversionService",
    "SessionService",
    "RefundService",
]
