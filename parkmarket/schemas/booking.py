from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from parkmarket.domain.common import BookingStatus


class VehicleInfo(BaseModel):
    make: str = Field(..., min_length=1, max_length=50)
    model: str = Field(..., min_length=1, max_length=50)
    color: str = Field(..., min_length=1, max_length=50)
    plate: str = Field(..., min_length=1, max_length=20)

    @field_validator("plate")
    @classmethod
    def validate_plate(cls, v):
        return v.upper().strip()


class GuestInfo(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(default="", max_length=30)


class BookingIntent(BaseModel):
    """What a traveler asks for. The date range is checked by the service."""

    location_id: int
    check_in: datetime
    check_out: datetime
    guest: GuestInfo
    vehicle: VehicleInfo
    user_id: Optional[int] = None
    promo_code: Optional[str] = None

    @field_validator("promo_code")
    @classmethod
    def normalize_promo_code(cls, v):
        if v is None:
            return None
        v = v.strip().upper()
        return v or None


class PaymentConfirmation(BaseModel):
    """Opaque result handed over by the payment gateway."""

    transaction_id: str
    success: bool = True
    provider: str = "stripe"
    client_secret: Optional[str] = None


class PriceQuote(BaseModel):
    location_id: int
    check_in: datetime
    check_out: datetime
    days: int
    multiplier: Decimal
    subtotal_before_discount: Decimal
    discount: Decimal
    subtotal: Decimal
    taxes: Decimal
    fees: Decimal
    total: Decimal
    remaining_spots: int


class BookingResponse(BaseModel):
    id: int
    location_id: int
    user_id: Optional[int] = None
    check_in: datetime
    check_out: datetime
    guest_first_name: str
    guest_last_name: str
    vehicle_plate: str
    total_price: Decimal
    taxes: Decimal
    fees: Decimal
    commission: Decimal
    owner_earnings: Decimal
    status: BookingStatus
    confirmation_code: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
