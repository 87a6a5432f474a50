import re
from datetime import datetime, timezone

from freezegun import freeze_time

from parkmarket.domain.confirmation import generate_confirmation_code

CODE_PATTERN = re.compile(r"^PK-[A-Z0-9]{6}-\d{4}$")


def test_code_format():
    assert CODE_PATTERN.match(generate_confirmation_code())


def test_suffix_is_last_four_digits_of_epoch_millis():
    now = datetime(2030, 1, 1, 0, 0, 5, tzinfo=timezone.utc)
    assert generate_confirmation_code(now=now).endswith("-5000")


@freeze_time("2030-01-01 00:00:07")
def test_suffix_uses_current_time():
    assert generate_confirmation_code().endswith("-7000")


def test_custom_prefix():
    assert generate_confirmation_code(prefix="QA").startswith("QA-")


def test_random_part_varies():
    codes = {generate_confirmation_code() for _ in range(50)}
    assert len(codes) > 1
