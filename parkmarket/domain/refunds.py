"""Refund eligibility under a location's cancellation policy.

The calculator only suggests an amount. Disbursement is always a separate,
administrator-approved step (see ``RefundService``).
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from parkmarket.domain.common import CancellationPolicyType
from parkmarket.domain.entities import CancellationPolicy
from parkmarket.domain.pricing import round_money
from parkmarket.shared.utils import ensure_aware

DEFAULT_DEADLINE_HOURS = 24

# Share of the price refunded when cancelling before the deadline
REFUND_SHARE_BEFORE_DEADLINE = {
    CancellationPolicyType.FREE: Decimal("1.00"),
    CancellationPolicyType.MODERATE: Decimal("0.50"),
    CancellationPolicyType.STRICT: Decimal("0.00"),
}


class RefundQuote(BaseModel):
    model_config = ConfigDict(frozen=True)

    amount: Decimal
    share: Decimal
    manual_review_required: bool = False


def hours_until(check_in: datetime, now: datetime) -> float:
    """Negative once check-in has passed."""
    return (ensure_aware(check_in) - ensure_aware(now)).total_seconds() / 3600


def compute_refund(
    policy: Optional[CancellationPolicy],
    hours_until_check_in: float,
    original_price: Decimal,
    default_deadline_hours: int = DEFAULT_DEADLINE_HOURS,
) -> RefundQuote:
    if policy is None:
        # Nothing to go on: suggest zero and hand it to a person
        return RefundQuote(amount=round_money(0), share=Decimal("0.00"), manual_review_required=True)

    deadline = policy.hours if policy.hours is not None else default_deadline_hours
    if hours_until_check_in >= deadline:
        share = REFUND_SHARE_BEFORE_DEADLINE[CancellationPolicyType(policy.type)]
    else:
        share = Decimal("0.00")

    return RefundQuote(amount=round_money(Decimal(str(original_price)) * share), share=share)


def full_refund(original_price: Decimal) -> RefundQuote:
    """Used for bookings withdrawn before the owner confirmed them."""
    return RefundQuote(amount=round_money(original_price), share=Decimal("1.00"))
