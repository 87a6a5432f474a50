import secrets
import string
from datetime import datetime
from typing import Optional

from parkmarket.shared.utils import utcnow

ALPHABET = string.ascii_uppercase + string.digits


def generate_confirmation_code(prefix: str = "PK", now: Optional[datetime] = None) -> str:
    """``PK-7GQ2ZK-4821``: prefix, six random characters, last four digits of epoch millis.

    Randomness alone is not trusted for uniqueness; storage enforces it.
    """
    token = "".join(secrets.choice(ALPHABET) for _ in range(6))
    millis = int((now or utcnow()).timestamp() * 1000)
    return f"{prefix}-{token}-{str(millis)[-4:]}"
