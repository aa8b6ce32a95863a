"""Attendance inference & reconciliation engine.

Two paths feed attendance records, and both go through the same classifier
and the same merging upsert:

* ``generate_attendance`` classifies every actively enrolled student of a
  class from their first login of the day.
* ``auto_mark`` runs in the background when a student logs in, for every
  class whose sheet is already open for today and whose login window
  contains the login time.
"""
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from lab_attendance import config
from lab_attendance.database import Database
from lab_attendance.engine.classifier import LoginEvent, classify
from lab_attendance.engine.schedule import ClassWindow, parse_schedule
from lab_attendance.engine.window import is_within_login_window
from lab_attendance.errors import (
    AttendanceError, InvalidDateError, NotEnrolledError, PerStudentError,
    ScheduleFormatError, ScheduleMissingError,
)
from lab_attendance.models import AttendanceStatus
from lab_attendance.stores import (
    AttendanceStore, ClassRepository, EnrollmentRepository, FeedbackStore,
    LoginEventStore, UserRepository,
)
from lab_attendance.utils.logger import logger

DateLike = Union[date, str]


def as_date(value: DateLike) -> date:
    """Accept a ``date`` or an ISO ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise InvalidDateError(value) from None


@dataclass
class GenerationResult:
    class_id: int
    date: date
    succeeded: int = 0
    failed_student_ids: List[int] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failed_student_ids)

    @property
    def total(self) -> int:
        return self.succeeded + self.failed


class AttendanceEngine:
    def __init__(
        self,
        classes: ClassRepository,
        enrollments: EnrollmentRepository,
        logins: LoginEventStore,
        attendance: AttendanceStore,
        users: UserRepository,
        feedback: FeedbackStore,
        clock=datetime.now,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.classes = classes
        self.enrollments = enrollments
        self.logins = logins
        self.attendance = attendance
        self.users = users
        self.feedback = feedback
        self.clock = clock
        self.executor = executor or ThreadPoolExecutor(
            max_workers=config.AUTO_MARK_WORKERS, thread_name_prefix="auto-mark"
        )

    @classmethod
    def from_database(cls, db: Database, clock=datetime.now, executor: Optional[ThreadPoolExecutor] = None):
        return cls(
            classes=ClassRepository(db),
            enrollments=EnrollmentRepository(db),
            logins=LoginEventStore(db, clock),
            attendance=AttendanceStore(db, clock),
            users=UserRepository(db),
            feedback=FeedbackStore(db, clock),
            clock=clock,
            executor=executor,
        )

    def shutdown(self, wait: bool = True):
        self.executor.shutdown(wait=wait)

    # -----------------------------
    # Class windows
    # -----------------------------
    def window_for(self, class_id: int) -> ClassWindow:
        schedule = self.classes.get_schedule(class_id)
        if not schedule or not schedule.strip():
            raise ScheduleMissingError(class_id)
        return parse_schedule(schedule)

    # -----------------------------
    # Sheets
    # -----------------------------
    def initialize_sheet(self, class_id: int, day: DateLike, actor_id: Optional[int] = None) -> int:
        day = as_date(day)
        students = self.enrollments.active_students(class_id)
        count = self.attendance.initialize_sheet(class_id, day, students, actor_id)
        logger.info(f"Attendance initialized for class {class_id} on {day} ({count} students)")
        return count

    def generate_attendance(self, class_id: int, day: DateLike, actor_id: Optional[int] = None) -> GenerationResult:
        """Classify every actively enrolled student from their logins on ``day``.

        Schedule errors abort the run before anything is written. A failure on
        one student is logged and skipped; re-running is safe and is the way
        to retry those students.
        """
        day = as_date(day)
        window = self.window_for(class_id)

        try:
            self.attendance.open_sheet(class_id, day, actor_id)
        except SQLAlchemyError as e:
            logger.warning(f"Failed to record attendance sheet for class {class_id} on {day}: {e}")

        result = GenerationResult(class_id=class_id, date=day)
        students = self.enrollments.active_students(class_id)
        if not students:
            logger.info(f"Attendance sheet created for class {class_id} on {day} (no students enrolled)")
            return result

        for student_id in students:
            try:
                login = self.logins.first_login_on(student_id, day)
                self.attendance.upsert_merged(class_id, student_id, day, classify(window, login))
            except (AttendanceError, SQLAlchemyError) as e:
                error = PerStudentError(student_id, e)
                logger.warning(f"Skipping attendance for class {class_id} on {day}: {error}")
                result.failed_student_ids.append(student_id)
                continue
            result.succeeded += 1

        logger.info(
            f"Attendance generated from logs for class {class_id} on {day}: "
            f"{result.succeeded} ok, {result.failed} failed"
        )
        return result

    def class_attendance(self, class_id: int, day: DateLike) -> List[dict]:
        return self.attendance.class_attendance(class_id, as_date(day))

    def update_record(self, class_id: int, student_id: int, day: DateLike, *, status: AttendanceStatus,
                      time_in=None, time_out=None, pc_number=None, remarks=None):
        """Teacher's manual edit of one record."""
        day = as_date(day)
        if not self.enrollments.is_enrolled(class_id, student_id):
            raise NotEnrolledError(class_id, student_id)
        self.attendance.update_record(
            class_id, student_id, day,
            time_in=time_in, time_out=time_out, pc_number=pc_number, status=status, remarks=remarks,
        )
        logger.info(f"Attendance record updated: class={class_id}, student={student_id}, date={day}, status={status}")

    # -----------------------------
    # Auto-mark
    # -----------------------------
    def auto_mark(self, student_id: int, at: datetime, pc_identifier: Optional[str]) -> List[int]:
        """Mark today's open sheets whose login window contains ``at``. Returns the marked class ids."""
        day = at.date()
        login = LoginEvent(user_id=student_id, login_at=at, pc_identifier=pc_identifier)
        marked = []
        for class_id, schedule in self.classes.classes_with_sheet_today(student_id, day):
            if not schedule or not schedule.strip():
                continue
            try:
                window = parse_schedule(schedule)
            except ScheduleFormatError as e:
                logger.warning(f"Auto-mark skipped class {class_id}: {e}")
                continue
            if not is_within_login_window(window, at):
                continue
            try:
                self.attendance.upsert_merged(class_id, student_id, day, classify(window, login))
            except (AttendanceError, SQLAlchemyError) as e:
                logger.error(f"Failed to auto-record attendance for student {student_id}, class {class_id}: {e}")
                continue
            logger.info(f"Auto-recorded attendance: student={student_id}, class={class_id}, pc={pc_identifier}")
            marked.append(class_id)
        return marked

    def run_auto_mark(self, student_id: int, at: datetime, pc_identifier: Optional[str]) -> List[int]:
        """``auto_mark`` for background dispatch: failures are logged, never raised."""
        # Nothing raised here may reach the login caller.
        try:
            return self.auto_mark(student_id, at, pc_identifier)
        except Exception:
            logger.exception(f"Auto-mark failed for student {student_id}")
            return []

    def on_student_login(self, student_id: int, at: datetime, pc_identifier: Optional[str]) -> Future:
        """Fire-and-forget hook for callers outside a request. The returned future need not be awaited."""
        return self.executor.submit(self.run_auto_mark, student_id, at, pc_identifier)

    # -----------------------------
    # Login sessions
    # -----------------------------
    def record_login(self, user_id: int, pc_number: Optional[str], at: Optional[datetime] = None):
        """Log a successful login. Returns the login event and the user's role.

        Dispatching auto-mark is left to the caller, see ``handle_login``.
        """
        role = self.users.role_of(user_id)
        event = self.logins.record_login(user_id, pc_number, at or self.clock())
        return event, role

    def handle_login(self, user_id: int, pc_number: Optional[str], at: Optional[datetime] = None):
        """Log a login and fire auto-mark on the engine's pool for attendance-marking roles.

        Returns the login event and the auto-mark future (``None`` for other roles).
        """
        event, role = self.record_login(user_id, pc_number, at)
        future = None
        if role.marks_attendance:
            future = self.on_student_login(user_id, event.login_at, pc_number)
        return event, future

    def record_logout(self, user_id: int, at: Optional[datetime] = None) -> bool:
        return self.logins.record_logout(user_id, at or self.clock())

    # -----------------------------
    # Archiving
    # -----------------------------
    def archive_sheet(self, class_id: int, day: DateLike, actor_id: Optional[int] = None) -> int:
        day = as_date(day)
        count = self.attendance.set_archived(class_id, day, True, actor_id)
        logger.info(f"Archived attendance sheet: class_id={class_id}, date={day}, records={count}")
        return count

    def unarchive_sheet(self, class_id: int, day: DateLike) -> int:
        day = as_date(day)
        count = self.attendance.set_archived(class_id, day, False)
        logger.info(f"Unarchived attendance sheet: class_id={class_id}, date={day}, records={count}")
        return count

    def archived_sheets(self, teacher_id: Optional[int] = None) -> List[dict]:
        return self.attendance.archived_sheets(teacher_id)

    def archive_logs(self, day: DateLike, actor_id: Optional[int] = None) -> int:
        day = as_date(day)
        count = self.logins.set_archived(day, True, actor_id)
        logger.info(f"{count} login logs archived for date {day} by user {actor_id}")
        return count

    def unarchive_logs(self, day: DateLike) -> int:
        day = as_date(day)
        count = self.logins.set_archived(day, False)
        logger.info(f"{count} login logs unarchived for date {day}")
        return count

    def archive_feedback(self, day: DateLike, actor_id: Optional[int] = None) -> int:
        day = as_date(day)
        count = self.feedback.set_archived(day, True, actor_id)
        logger.info(f"{count} feedback entries archived for date {day} by user {actor_id}")
        return count

    def unarchive_feedback(self, day: DateLike) -> int:
        day = as_date(day)
        count = self.feedback.set_archived(day, False)
        logger.info(f"{count} feedback entries unarchived for date {day}")
        return count
