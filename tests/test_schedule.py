from datetime import time

import pytest

from lab_attendance.engine.schedule import parse_schedule, parse_start_time, weekdays_for
from lab_attendance.errors import ScheduleFormatError

MON, TUE, WED, THU, FRI, SAT, SUN = range(7)


def test_parse_spaced_dash():
    window = parse_schedule("MWF 8:00 AM - 10:00 AM")
    assert window.days == {MON, WED, FRI}
    assert window.start == time(8, 0)
    assert window.end == time(10, 0)


def test_parse_meridiem_glued_to_dash():
    window = parse_schedule("Mon-Wed 2:00 PM-4:00 PM")
    assert window.start == time(14, 0)
    assert window.end == time(16, 0)


def test_parse_dash_glued_to_end_time():
    window = parse_schedule("TTh 1:30 PM -3:00 PM")
    assert window.start == time(13, 30)
    assert window.end == time(15, 0)
    assert window.days == {TUE, THU}


def test_parse_full_day_name():
    window = parse_schedule("Monday 8:00 AM - 10:00 AM")
    assert window.days == {MON}


def test_parse_start_only():
    window = parse_schedule("Sat 9:00 AM")
    assert window.start == time(9, 0)
    assert window.end is None
    assert window.days == {SAT}


def test_noon_and_midnight():
    assert parse_start_time("MWF 12:00 PM - 1:00 PM") == time(12, 0)
    assert parse_start_time("MWF 12:30 AM - 1:00 AM") == time(0, 30)


def test_start_time_ignores_everything_after_dash():
    assert parse_start_time("MWF 4:30 PM-6:00") == time(16, 30)


def test_lowercase_meridiem():
    assert parse_schedule("MWF 8:00 am - 9:00 am").start == time(8, 0)


@pytest.mark.parametrize("token, expected", [
    # Ranges are not expanded: only the named ends match.
    ("Mon-Fri", {MON, FRI}),
    ("mon-wed", {MON, WED}),
    ("Tuesday", {TUE}),
    ("Sun", {SUN}),
    ("SAT", {SAT}),
    ("MW", {MON, WED}),
    ("TTH", {TUE, THU}),
    ("Su", {SUN}),
    ("xyz", set()),
])
def test_weekdays_for(token, expected):
    assert weekdays_for(token) == expected


def test_too_few_tokens():
    with pytest.raises(ScheduleFormatError) as exc:
        parse_schedule("MWF 8:00")
    assert exc.value.fragment == "MWF 8:00"


def test_empty_schedule():
    with pytest.raises(ScheduleFormatError):
        parse_schedule("")


def test_bad_clock_carries_fragment():
    with pytest.raises(ScheduleFormatError) as exc:
        parse_schedule("MWF 25:00 AM - 10:00 AM")
    assert exc.value.fragment == "25:00 AM"


def test_bad_meridiem():
    with pytest.raises(ScheduleFormatError) as exc:
        parse_schedule("MWF 8:00 XM - 10:00 AM")
    assert exc.value.fragment == "8:00 XM"


def test_bad_end_time():
    with pytest.raises(ScheduleFormatError) as exc:
        parse_schedule("MWF 8:00 AM - 10:75 AM")
    assert exc.value.fragment == "10:75 AM"


def test_trailing_room_is_ignored():
    window = parse_schedule("MWF 8:00 AM Room 3")
    assert window.start == time(8, 0)
    assert window.end is None
    assert window.days == {MON, WED, FRI}


def test_trailing_text_after_end_is_ignored():
    window = parse_schedule("MWF 8:00 AM - 10:00 AM Lab-2")
    assert window.start == time(8, 0)
    assert window.end == time(10, 0)


@pytest.mark.parametrize("schedule", [
    "MWF 8:00 AM 10:00 AM",
    "MWF 8:00 AM - 10:00",
    "MWF 8:00 AM - noon PM",
    "MWF 8:00 AM - 10:00 XM",
])
def test_malformed_end_clause_leaves_window_open_ended(schedule):
    window = parse_schedule(schedule)
    assert window.start == time(8, 0)
    assert window.end is None
