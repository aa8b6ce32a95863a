from dataclasses import dataclass
from datetime import datetime, time
from typing import Optional

from lab_attendance.engine.schedule import ClassWindow
from lab_attendance.engine.window import is_present
from lab_attendance.models import NOT_LOGGED_IN_REMARK, AttendanceStatus


@dataclass(frozen=True)
class LoginEvent:
    """A successful login, read from the login log. Never mutated here."""
    user_id: int
    login_at: datetime
    logout_at: Optional[datetime] = None
    pc_identifier: Optional[str] = None


@dataclass(frozen=True)
class Classification:
    status: AttendanceStatus
    time_in: Optional[time] = None
    time_out: Optional[time] = None
    pc_identifier: Optional[str] = None
    remarks: Optional[str] = None


def _time_of_day(moment: datetime) -> time:
    return moment.time().replace(microsecond=0)


def classify(window: ClassWindow, login: Optional[LoginEvent]) -> Classification:
    """Classify a student's day from their first login (or its absence)."""
    if login is None:
        return Classification(status=AttendanceStatus.absent, remarks=NOT_LOGGED_IN_REMARK)

    time_in = _time_of_day(login.login_at)
    time_out = _time_of_day(login.logout_at) if login.logout_at is not None else None
    status = AttendanceStatus.present if is_present(window, time_in) else AttendanceStatus.late

    return Classification(
        status=status,
        time_in=time_in,
        time_out=time_out,
        pc_identifier=login.pc_identifier,
    )
