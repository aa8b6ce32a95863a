from datetime import date, datetime, time, timedelta

from lab_attendance.engine.schedule import ClassWindow

# Students may log in this long before class starts.
EARLY_LOGIN_GRACE = timedelta(minutes=10)
# A login up to this long after the start still counts as present.
PRESENT_GRACE = timedelta(minutes=10)

# Times of day are compared on one fixed date so only h/m/s matter.
_EPOCH = date(2000, 1, 1)


def _on_epoch(t: time) -> datetime:
    return datetime.combine(_EPOCH, t.replace(tzinfo=None))


def present_cutoff(window: ClassWindow) -> time:
    """Latest time-of-day that still classifies a login as present."""
    return (_on_epoch(window.start) + PRESENT_GRACE).time()


def is_present(window: ClassWindow, time_in: time) -> bool:
    # Inclusive: a login exactly at the cutoff is present.
    return _on_epoch(time_in) <= _on_epoch(window.start) + PRESENT_GRACE


def is_within_login_window(window: ClassWindow, now: datetime) -> bool:
    """Whether ``now`` falls on a class day inside [start - 10 min, end]."""
    if window.end is None:
        return False
    if not window.meets_on(now.weekday()):
        return False

    current = _on_epoch(now.time())
    opens = _on_epoch(window.start) - EARLY_LOGIN_GRACE
    closes = _on_epoch(window.end)
    return opens <= current <= closes
