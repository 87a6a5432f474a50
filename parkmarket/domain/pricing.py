"""Booking price computation.

Everything here is pure: the caller validates the date range and the
promotion before asking for a price, and identical inputs always produce an
identical :class:`PriceBreakdown`.
"""
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict

from parkmarket.domain.common import DiscountType
from parkmarket.domain.entities import CommissionRule, PricingRule, Promotion
from parkmarket.shared.utils import ensure_aware

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
ONE_DAY = timedelta(days=1)

DEFAULT_TAX_RATE = Decimal("0.12")
DEFAULT_SERVICE_FEE = Decimal("5.99")
DEFAULT_COMMISSION_RATE = Decimal("15")


class PriceBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_price: Decimal
    days: int
    multiplier: Decimal
    subtotal_before_discount: Decimal
    discount: Decimal
    subtotal: Decimal
    taxes: Decimal
    fees: Decimal
    total: Decimal
    commission: Decimal
    owner_earnings: Decimal


def round_money(value) -> Decimal:
    """Round half away from zero to whole cents."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def billable_days(check_in: datetime, check_out: datetime) -> int:
    days, remainder = divmod(ensure_aware(check_out) - ensure_aware(check_in), ONE_DAY)
    if remainder:
        days += 1
    return max(1, days)


def is_rule_active(rule: PricingRule, check_in: datetime, check_out: datetime) -> bool:
    if not rule.is_active:
        return False
    if rule.start_date is not None and ensure_aware(rule.start_date) > ensure_aware(check_in):
        return False
    if rule.end_date is not None and ensure_aware(rule.end_date) < ensure_aware(check_out):
        return False
    return True


def select_multiplier(rules: Iterable[PricingRule], check_in: datetime, check_out: datetime) -> Decimal:
    """Highest multiplier among the rules active for the stay; rules never stack."""
    active = [rule.multiplier for rule in rules if is_rule_active(rule, check_in, check_out)]
    if not active:
        return Decimal("1.0")
    return max(active)


def compute_discount(promotion: Optional[Promotion], subtotal: Decimal) -> Decimal:
    if promotion is None:
        return ZERO
    if promotion.type == DiscountType.PERCENTAGE:
        discount = round_money(subtotal * promotion.value / Decimal(100))
    else:
        discount = round_money(promotion.value)
    if promotion.max_discount is not None:
        discount = min(discount, round_money(promotion.max_discount))
    return min(discount, subtotal)


def compute_commission(
    commission_rule: Optional[CommissionRule],
    subtotal: Decimal,
    default_rate: Decimal = DEFAULT_COMMISSION_RATE,
) -> Decimal:
    if commission_rule is None:
        commission = round_money(subtotal * default_rate / Decimal(100))
    elif commission_rule.type == DiscountType.PERCENTAGE:
        commission = round_money(subtotal * commission_rule.value / Decimal(100))
    else:
        commission = round_money(commission_rule.value)

    if commission_rule is not None and commission_rule.max_commission is not None:
        commission = min(commission, round_money(commission_rule.max_commission))
    return min(commission, subtotal)


def compute_pricing(
    base_price: Decimal,
    rules: Iterable[PricingRule],
    check_in: datetime,
    check_out: datetime,
    promotion: Optional[Promotion] = None,
    commission_rule: Optional[CommissionRule] = None,
    tax_rate: Decimal = DEFAULT_TAX_RATE,
    service_fee: Decimal = DEFAULT_SERVICE_FEE,
    default_commission_rate: Decimal = DEFAULT_COMMISSION_RATE,
) -> PriceBreakdown:
    base_price = Decimal(str(base_price))
    days = billable_days(check_in, check_out)
    multiplier = select_multiplier(rules, check_in, check_out)

    subtotal_before_discount = round_money(base_price * days * multiplier)
    discount = compute_discount(promotion, subtotal_before_discount)
    subtotal = max(ZERO, subtotal_before_discount - discount)

    taxes = round_money(subtotal * Decimal(str(tax_rate)))
    fees = round_money(service_fee)
    commission = compute_commission(commission_rule, subtotal, Decimal(str(default_commission_rate)))

    return PriceBreakdown(
        base_price=round_money(base_price),
        days=days,
        multiplier=multiplier,
        subtotal_before_discount=subtotal_before_discount,
        discount=discount,
        subtotal=subtotal,
        taxes=taxes,
        fees=fees,
        total=subtotal + taxes + fees,
        commission=commission,
        owner_earnings=subtotal - commission,
    )
