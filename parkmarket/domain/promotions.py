from datetime import datetime
from typing import Optional

from parkmarket.domain.entities import Promotion
from parkmarket.domain.errors import InvalidPromotion
from parkmarket.shared.utils import ensure_aware


def normalize_code(code: str) -> str:
    return code.strip().upper()


def validate_promotion(promotion: Optional[Promotion], now: datetime, code: str = "") -> Promotion:
    """Return the promotion if it may be applied at ``now``, else raise InvalidPromotion."""
    if promotion is None:
        raise InvalidPromotion(f"Unknown promo code {code!r}.")
    if not promotion.is_active:
        raise InvalidPromotion(f"Promo code {promotion.code} is inactive.")

    now = ensure_aware(now)
    if ensure_aware(promotion.valid_until) < now:
        raise InvalidPromotion(f"Promo code {promotion.code} has expired.")
    if promotion.valid_from is not None and ensure_aware(promotion.valid_from) > now:
        raise InvalidPromotion(f"Promo code {promotion.code} is not active yet.")
    if promotion.usage_limit is not None and promotion.used_count >= promotion.usage_limit:
        raise InvalidPromotion(f"Promo code {promotion.code} usage limit reached.")
    return promotion
