from enum import Enum


class LocationStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"


class SessionStatus(str, Enum):
    RESERVED = "RESERVED"
    PENDING = "pending"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    CANCELLED = "cancelled"


class RefundStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class RequestType(str, Enum):
    WALK_IN = "WALK_IN"
    EXTENSION = "EXTENSION"
    MODIFICATION = "MODIFICATION"
    EARLY_CHECKOUT = "EARLY_CHECKOUT"


class DiscountType(str, Enum):
    """Shared by promotions and commission rules."""
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class CancellationPolicyType(str, Enum):
    FREE = "free"
    MODERATE = "moderate"
    STRICT = "strict"


class WalletTransactionType(str, Enum):
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"
    REFUND = "REFUND"
