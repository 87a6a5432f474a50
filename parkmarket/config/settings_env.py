from decimal import Decimal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Development
    DEV_MODE: bool = Field(default=True, description="Enable debug mode")

    # Database
    ASYNC_DATABASE_URL: str = Field(default="sqlite+aiosqlite:///./parkmarket.db", description="Async database URL")
    SQLITE_BUSY_TIMEOUT: float = Field(default=15.0, description="Seconds a SQLite writer waits for the lock")

    # Pricing
    TAX_RATE: Decimal = Field(default=Decimal("0.12"), description="Tax applied to the booking subtotal")
    SERVICE_FEE: Decimal = Field(default=Decimal("5.99"), description="Flat service fee per booking")
    DEFAULT_COMMISSION_RATE: Decimal = Field(default=Decimal("15"), description="Commission percent when no rule is active")
    WALK_IN_TAX_RATE: Decimal = Field(default=Decimal("0.12"), description="Tax applied to staff-converted requests")
    CURRENCY: str = Field(default="USD", description="Wallet and payment currency")

    # Bookings
    DEFAULT_CANCELLATION_HOURS: int = Field(default=24, description="Free-cancellation deadline when a policy omits it")
    CONFIRMATION_CODE_PREFIX: str = Field(default="PK", description="Prefix of booking confirmation codes")
    CONFIRMATION_CODE_ATTEMPTS: int = Field(default=5, description="Retries when a generated code already exists")


# Create settings instance
settings = Settings()
