import datetime
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import DateTime, Numeric, String, TypeDecorator
from sqlalchemy.dialects.sqlite import DATETIME as SQLITE_DATETIME


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetimes stored in UTC.

    SQLite has no timezone support, so values are written there as naive UTC
    and re-tagged with ``timezone.utc`` on the way out.
    """
    impl = DateTime
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'sqlite':
            return dialect.type_descriptor(SQLITE_DATETIME())
        else:
            return dialect.type_descriptor(DateTime(timezone=True))

    def process_bind_param(self, value: datetime.datetime | None, dialect) -> datetime.datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            # Naive values are already UTC inside this code base
            value = value.replace(tzinfo=datetime.timezone.utc)
        return value.astimezone(datetime.timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value: datetime.datetime | None, dialect) -> datetime.datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=datetime.timezone.utc)
        return value.astimezone(datetime.timezone.utc)


class ExactDecimal(TypeDecorator):
    """``Decimal`` values with a fixed scale.

    PostgreSQL gets ``NUMERIC(precision, scale)``. SQLite has no decimal type,
    so the quantized value is stored as text to keep it exact.
    """
    impl = Numeric
    cache_ok = True

    def __init__(self, precision: int = 12, scale: int = 2):
        super().__init__(precision, scale)
        self.precision = precision
        self.scale = scale
        self.quantum = Decimal(1).scaleb(-scale)

    def load_dialect_impl(self, dialect):
        if dialect.name == 'sqlite':
            return dialect.type_descriptor(String(32))
        return dialect.type_descriptor(Numeric(self.precision, self.scale, asdecimal=True))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        amount = Decimal(str(value)).quantize(self.quantum, rounding=ROUND_HALF_UP)
        if dialect.name == 'sqlite':
            return str(amount)
        return amount

    def process_result_value(self, value, dialect) -> Decimal | None:
        if value is None:
            return None
        return Decimal(str(value)).quantize(self.quantum, rounding=ROUND_HALF_UP)


class Money(ExactDecimal):
    """Currency amounts in whole cents."""
    cache_ok = True

    def __init__(self):
        super().__init__(12, 2)
