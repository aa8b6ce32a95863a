"""Parsing of free-text class schedules into class windows.

Schedules are typed by hand and stored for display, so the grammar is
forgiving:

    <days> <start> <AM|PM> [- <end> <AM|PM>] [anything else]

``<days>`` is a day name ("Monday"), a range-like token ("Mon-Fri") or a
compact letter code ("MWF", "TTh"). The meridiem may be glued to the dash
that follows it ("2:00 PM-4:00 PM").
"""
import re
from dataclasses import dataclass
from datetime import datetime, time
from typing import FrozenSet, List, Optional

from lab_attendance.errors import ScheduleFormatError

WEEKDAY_ABBREVIATIONS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

# Letter codes, case-sensitive so that "SAT" or "SUN" are not read as codes.
_LETTER_CODES = {
    "M": 0, "T": 1, "W": 2, "Th": 3, "TH": 3, "R": 3, "F": 4, "S": 5, "Sa": 5, "Su": 6,
}
_LETTER_CODE_RE = re.compile(r"(Th|TH|Sa|Su|M|T|W|R|F|S)")
_MERIDIEMS = ("AM", "PM")
_CLOCK_RE = re.compile(r"^\d{1,2}:\d{2}$")


@dataclass(frozen=True)
class ClassWindow:
    """Structured form of a schedule string. Built fresh on every evaluation."""
    day_token: str
    start: time
    end: Optional[time] = None

    @property
    def days(self) -> FrozenSet[int]:
        return weekdays_for(self.day_token)

    def meets_on(self, weekday: int) -> bool:
        return weekday in self.days


def weekdays_for(day_token: str) -> FrozenSet[int]:
    """Weekdays (Monday == 0) named by a schedule's day token.

    A weekday matches when its first three letters appear anywhere in the
    token, case-insensitively. "Mon-Fri" therefore means Monday and Friday
    only. Tokens made up entirely of letter codes are decoded as such.
    """
    lowered = day_token.lower()
    days = {i for i, abbr in enumerate(WEEKDAY_ABBREVIATIONS) if abbr in lowered}

    codes = _LETTER_CODE_RE.findall(day_token)
    if codes and "".join(codes) == day_token:
        days.update(_LETTER_CODES[code] for code in codes)
    return frozenset(days)


def _tokenize(schedule: str) -> List[str]:
    """Whitespace tokens after the day token, with every '-' split out on its own."""
    tokens = []
    for raw in schedule.split()[1:]:
        for piece in re.split(r"(-)", raw):
            if piece:
                tokens.append(piece)
    return tokens


def _parse_clock(clock: str, meridiem: str) -> time:
    literal = f"{clock} {meridiem}"
    if meridiem.upper() not in _MERIDIEMS:
        raise ScheduleFormatError(literal, "expected AM or PM")
    try:
        return datetime.strptime(literal, "%I:%M %p").time()
    except ValueError:
        raise ScheduleFormatError(literal, "unparsable time") from None


def parse_start_time(schedule: str) -> time:
    """Start time-of-day of a schedule; only the first three tokens are needed."""
    parts = schedule.split()
    if len(parts) < 3:
        raise ScheduleFormatError(schedule)

    # "PM-6:00" -> "PM"
    meridiem = parts[2].split("-", 1)[0]
    return _parse_clock(parts[1], meridiem)


def _end_clause(rest: List[str]) -> Optional[time]:
    """End time from ``- <clock> <AM|PM>`` when the schedule carries one.

    Anything else after the start time (a room, a note) is ignored. A clause
    that has the right shape but an impossible clock still fails.
    """
    if len(rest) < 3 or rest[0] != "-":
        return None
    clock, meridiem = rest[1], rest[2]
    if not _CLOCK_RE.match(clock) or meridiem.upper() not in _MERIDIEMS:
        return None
    return _parse_clock(clock, meridiem)


def parse_schedule(schedule: str) -> ClassWindow:
    """Parse a schedule string into a ``ClassWindow``.

    Only the day token and the start time are required. A window without an
    end time only serves for present/late classification and never accepts
    logins.
    """
    if schedule is None or len(schedule.split()) < 3:
        raise ScheduleFormatError(schedule or "")

    day_token = schedule.split()[0]
    start = parse_start_time(schedule)

    # tokens[0:2] are the start clock and meridiem, already parsed.
    end = _end_clause(_tokenize(schedule)[2:])
    return ClassWindow(day_token=day_token, start=start, end=end)
