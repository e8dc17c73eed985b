import pytest
from control_numbers import generate_control_number

pytestmark = pytest.mark.unit


def test_uses_last_nine_digits_of_epoch_millis():
    assert generate_control_number(0, now_ms=1_712_345_678_901) == "345678901"


def test_adds_index_and_zero_pads():
    assert generate_control_number(0, now_ms=1_700_000_000_123) == "000000123"
    assert generate_control_number(2, now_ms=1_700_000_000_123) == "000000125"


def test_carry_is_absorbed_into_nine_digits():
    assert generate_control_number(1, now_ms=1_999_999_999_999) == "000000000"


def test_distinct_indices_give_distinct_numbers_within_a_batch():
    numbers = {generate_control_number(i, now_ms=1_712_345_678_901) for i in range(5)}
    assert len(numbers) == 5


def test_defaults_to_current_time():
    control_number = generate_control_number(0)
    assert len(control_number) == 9
    assert control_number.isdigit()
