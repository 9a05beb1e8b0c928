import pytest

from homeservice.shared.validators import contains_pattern, minutes_to_time, time_to_minutes


@pytest.mark.parametrize(
    "text, expected",
    [
        ("makeup", "%makeup%"),
        ("50%_off", r"%50\%\_off%"),
        ("a\\b", r"%a\\b%"),
    ],
)
def test_contains_pattern_escapes_wildcards(text, expected):
    assert contains_pattern(text) == expected


def test_time_helpers():
    assert time_to_minutes("09:30") == 570
    assert minutes_to_time(570) == "09:30"
