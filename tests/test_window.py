from datetime import datetime, time

import pytest

from lab_attendance.engine.schedule import ClassWindow, parse_schedule
from lab_attendance.engine.window import is_present, is_within_login_window, present_cutoff

WINDOW = parse_schedule("MWF 8:00 AM - 10:00 AM")


def monday(hour, minute, second=0):
    return datetime(2026, 10, 12, hour, minute, second)


def test_present_cutoff_is_ten_minutes_after_start():
    assert present_cutoff(WINDOW) == time(8, 10)


def test_present_cutoff_is_inclusive():
    assert is_present(WINDOW, time(8, 10, 0))
    assert not is_present(WINDOW, time(8, 10, 1))


@pytest.mark.parametrize("moment, expected", [
    (monday(7, 49, 59), False),
    (monday(7, 50), True),      # 10-minute early grace
    (monday(9, 0), True),
    (monday(10, 0), True),      # end is inclusive
    (monday(10, 0, 1), False),
])
def test_login_window_bounds(moment, expected):
    assert is_within_login_window(WINDOW, moment) is expected


def test_login_window_wrong_day():
    tuesday = datetime(2026, 10, 13, 9, 0)
    assert not is_within_login_window(WINDOW, tuesday)


def test_login_window_ignores_date():
    friday_next_year = datetime(2027, 10, 15, 8, 30)
    assert is_within_login_window(WINDOW, friday_next_year)


def test_window_without_end_never_accepts_logins():
    window = ClassWindow(day_token="MWF", start=time(8, 0))
    assert not is_within_login_window(window, monday(8, 0))


def test_early_grace_wraps_past_midnight():
    window = parse_schedule("Mon 12:05 AM - 1:00 AM")
    assert is_within_login_window(window, monday(0, 0))
