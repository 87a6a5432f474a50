from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Optional

from parkmarket.domain.common import WalletTransactionType
from parkmarket.domain.entities import (
    Booking,
    BookingRequest,
    CommissionRule,
    Location,
    LocationAnalytics,
    ParkingSession,
    Payment,
    Promotion,
    RefundRequest,
    Wallet,
    WalletTransaction,
)


class AbstractLocationRepository(ABC):
    @abstractmethod
    async def get_by_id(self, location_id: int, for_update: bool = False) -> Optional[Location]:
        """Load a location with its pricing rules; ``for_update`` row-locks it."""

    @abstractmethod
    async def update(self, location: Location) -> Location:
        pass


class AbstractBookingRepository(ABC):
    @abstractmethod
    async def get_by_id(self, booking_id: int, for_update: bool = False) -> Optional[Booking]:
        pass

    @abstractmethod
    async def get_by_confirmation_code(self, confirmation_code: str) -> Optional[Booking]:
        pass

    @abstractmethod
    async def confirmation_code_exists(self, confirmation_code: str) -> bool:
        pass

    @abstractmethod
    async def count_overlapping(
        self, location_id: int, check_in: datetime, check_out: datetime, exclude_booking_id: Optional[int] = None
    ) -> int:
        """Bookings in PENDING/CONFIRMED whose range overlaps ``[check_in, check_out)``."""

    @abstractmethod
    async def add(self, booking: Booking) -> Booking:
        pass

    @abstractmethod
    async def update(self, booking: Booking) -> Booking:
        pass


class AbstractPaymentRepository(ABC):
    @abstractmethod
    async def add(self, payment: Payment) -> Payment:
        pass

    @abstractmethod
    async def get_by_booking_id(self, booking_id: int) -> Optional[Payment]:
        pass


class AbstractParkingSessionRepository(ABC):
    @abstractmethod
    async def add(self, session: ParkingSession) -> ParkingSession:
        pass

    @abstractmethod
    async def get_by_id(self, session_id: int) -> Optional[ParkingSession]:
        pass

    @abstractmethod
    async def get_by_booking_id(self, booking_id: int) -> Optional[ParkingSession]:
        pass

    @abstractmethod
    async def update(self, session: ParkingSession) -> ParkingSession:
        pass


class AbstractPromotionRepository(ABC):
    @abstractmethod
    async def get_by_code(self, code: str) -> Optional[Promotion]:
        pass

    @abstractmethod
    async def increment_usage(self, promotion_id: int) -> Promotion:
        pass


class AbstractCommissionRuleRepository(ABC):
    @abstractmethod
    async def get_active(self) -> Optional[CommissionRule]:
        pass


class AbstractRefundRequestRepository(ABC):
    @abstractmethod
    async def add(self, refund: RefundRequest) -> RefundRequest:
        pass

    @abstractmethod
    async def get_by_id(self, refund_id: int, for_update: bool = False) -> Optional[RefundRequest]:
        pass

    @abstractmethod
    async def update(self, refund: RefundRequest) -> RefundRequest:
        pass


class AbstractBookingRequestRepository(ABC):
    @abstractmethod
    async def add(self, request: BookingRequest) -> BookingRequest:
        pass

    @abstractmethod
    async def get_by_id(self, request_id: int, for_update: bool = False) -> Optional[BookingRequest]:
        pass

    @abstractmethod
    async def update(self, request: BookingRequest) -> BookingRequest:
        pass


class AbstractWalletRepository(ABC):
    @abstractmethod
    async def get_by_owner_id(self, owner_id: int, for_update: bool = False) -> Optional[Wallet]:
        pass

    @abstractmethod
    async def add(self, wallet: Wallet) -> Wallet:
        pass

    @abstractmethod
    async def update(self, wallet: Wallet) -> Wallet:
        pass

    @abstractmethod
    async def add_transaction(self, transaction: WalletTransaction) -> WalletTransaction:
        pass

    @abstractmethod
    async def has_transaction(self, wallet_id: int, type: WalletTransactionType, reference: str) -> bool:
        pass


class AbstractLocationAnalyticsRepository(ABC):
    @abstractmethod
    async def record(self, location_id: int, bookings_delta: int, revenue_delta: Decimal) -> LocationAnalytics:
        """Upsert the location's counters, adding the deltas."""
