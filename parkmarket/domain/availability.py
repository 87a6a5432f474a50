from datetime import datetime

from parkmarket.domain.common import BookingStatus
from parkmarket.domain.errors import InvalidDateRange
from parkmarket.shared.utils import ensure_aware

# Statuses that hold a spot-slot for the booked range
OCCUPYING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)


def validate_date_range(check_in: datetime, check_out: datetime) -> None:
    if check_in is None or check_out is None:
        raise InvalidDateRange("Check-in and check-out are required.")
    if ensure_aware(check_out) <= ensure_aware(check_in):
        raise InvalidDateRange()


def remaining_capacity(total_spots: int, overlapping_count: int) -> int:
    return total_spots - overlapping_count


def has_capacity(total_spots: int, overlapping_count: int) -> bool:
    return remaining_capacity(total_spots, overlapping_count) > 0
