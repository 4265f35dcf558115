import pytest

from attendance_panel.timeparse import fmt_mins, join_hour, parse_duration, parse_time12, round_half_up


@pytest.mark.parametrize("text, expected", [
    ("1 h 23 min", 83),
    ("45 min", 45),
    ("2 h", 120),
    ("3 h 0 min", 180),
    ("5 s", 0),
    ("", 0),
    (None, 0),
    (42, 0),
])
def test_parse_duration(text, expected):
    assert parse_duration(text) == expected


@pytest.mark.parametrize("text, expected", [
    ("2:30 p.m.", 870),
    ("12:00 a.m.", 0),
    ("12:15 p.m.", 735),
    ("10:15 AM", 615),
    ("9:05 a. m.", 545),
    ("14:30", 0),
    ("", 0),
    (None, 0),
])
def test_parse_time12(text, expected):
    assert parse_time12(text) == expected


def test_join_hour_distinguishes_midnight_from_unparseable():
    assert join_hour("12:10 a.m.") == 0
    assert join_hour("nada") is None
    assert join_hour("3:59 p.m.") == 15


def test_round_half_up_does_not_round_to_even():
    assert round_half_up(95.625) == 96
    assert round_half_up(2.5) == 3
    assert round_half_up(57.25, 1) == 57.3


def test_fmt_mins():
    assert fmt_mins(45) == "45m"
    assert fmt_mins(59.6) == "1h 00m"
    assert fmt_mins(125) == "2h 05m"
