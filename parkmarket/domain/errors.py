"""Typed failures raised by the booking core.

Every error carries an :class:`ErrorKind` so the API layer can map it to a
response without string matching. Domain errors mean "your request is
invalid"; :class:`StorageFailure` means "try again".
"""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    LOCATION_UNAVAILABLE = "LocationUnavailable"
    NO_SPOTS_AVAILABLE = "NoSpotsAvailable"
    INVALID_PROMOTION = "InvalidPromotion"
    INVALID_DATE_RANGE = "InvalidDateRange"
    INVALID_STATE_TRANSITION = "InvalidStateTransition"
    ALREADY_CANCELLED = "AlreadyCancelled"
    REQUEST_NOT_FOUND = "RequestNotFound"
    INVALID_REQUEST_STATE = "InvalidRequestState"
    UNAUTHORIZED = "Unauthorized"
    BOOKING_NOT_FOUND = "BookingNotFound"
    SESSION_NOT_FOUND = "SessionNotFound"
    REFUND_NOT_FOUND = "RefundNotFound"
    PAYMENT_DECLINED = "PaymentDeclined"
    INVALID_REFUND_AMOUNT = "InvalidRefundAmount"
    STORAGE_FAILURE = "StorageFailure"


class BookingError(Exception):
    kind: ErrorKind
    default_detail = "Booking operation failed."
    retryable = False

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def __repr__(self):
        return f"{type(self).__name__}(kind={self.kind.value!r}, detail={self.detail!r})"


class LocationUnavailable(BookingError):
    kind = ErrorKind.LOCATION_UNAVAILABLE
    default_detail = "Parking location is not accepting bookings."


class NoSpotsAvailable(BookingError):
    kind = ErrorKind.NO_SPOTS_AVAILABLE
    default_detail = "Sold out: no spots available for the selected dates."


class InvalidPromotion(BookingError):
    kind = ErrorKind.INVALID_PROMOTION
    default_detail = "Invalid or expired promo code."


class InvalidDateRange(BookingError):
    kind = ErrorKind.INVALID_DATE_RANGE
    default_detail = "Check-out must be after check-in."


class InvalidStateTransition(BookingError):
    kind = ErrorKind.INVALID_STATE_TRANSITION
    default_detail = "Operation is not allowed in the current status."


class AlreadyCancelled(BookingError):
    kind = ErrorKind.ALREADY_CANCELLED
    default_detail = "Booking already cancelled."


class RequestNotFound(BookingError):
    kind = ErrorKind.REQUEST_NOT_FOUND
    default_detail = "Booking request not found."


class InvalidRequestState(BookingError):
    kind = ErrorKind.INVALID_REQUEST_STATE
    default_detail = "Booking request is not in PENDING status."


class Unauthorized(BookingError):
    kind = ErrorKind.UNAUTHORIZED
    default_detail = "Caller is not allowed to act on this booking."


class BookingNotFound(BookingError):
    kind = ErrorKind.BOOKING_NOT_FOUND
    default_detail = "Booking not found."


class SessionNotFound(BookingError):
    kind = ErrorKind.SESSION_NOT_FOUND
    default_detail = "Parking session not found."


class RefundNotFound(BookingError):
    kind = ErrorKind.REFUND_NOT_FOUND
    default_detail = "Refund request not found."


class PaymentDeclined(BookingError):
    kind = ErrorKind.PAYMENT_DECLINED
    default_detail = "Payment processing failed."


class InvalidRefundAmount(BookingError):
    kind = ErrorKind.INVALID_REFUND_AMOUNT
    default_detail = "Refund amount must be between zero and the booking total."


class StorageFailure(BookingError):
    kind = ErrorKind.STORAGE_FAILURE
    default_detail = "Storage transaction failed; the operation was rolled back."
    retryable = True
