"""SQLAlchemy-backed collaborators of the attendance engine.

The engine only reads classes, enrollments and login logs. It writes
attendance records through ``AttendanceStore.upsert_merged``, which performs
the field-level merge inside a single INSERT ... ON CONFLICT statement keyed
on (class_id, student_user_id, date), so concurrent writers for the same key
can never produce two rows.
"""
from datetime import date, datetime, time, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy import and_, case, func, null, or_, select, update
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from lab_attendance.database import Database
from lab_attendance.engine.classifier import Classification, LoginEvent
from lab_attendance.errors import (
    ArchiveTransitionError, MergeConflictError, RecordNotFoundError,
)
from lab_attendance.models import (
    NOT_LOGGED_IN_REMARK, AttendanceRecord, AttendanceSheet, AttendanceStatus,
    Enrollment, Feedback, LoginLog, SchoolClass, User,
)
from lab_attendance.roles import UserRole
from lab_attendance.utils.logger import logger

Clock = Callable[[], datetime]


def _day_bounds(day: date) -> Tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def _upsert(session, model, values: dict, keys: List[str], assignments: Callable):
    """INSERT ``values``; on a key collision apply ``assignments(new)`` instead.

    ``assignments`` receives the pseudo-table holding the incoming row and
    returns an ordered dict of column -> expression. MySQL evaluates its
    assignments left to right, so expressions that read the stored row must
    come before the columns they read are overwritten.
    """
    dialect = session.get_bind().dialect.name
    if dialect == "sqlite":
        stmt = sqlite.insert(model).values(**values)
        stmt = stmt.on_conflict_do_update(index_elements=keys, set_=assignments(stmt.excluded))
    elif dialect == "postgresql":
        stmt = postgresql.insert(model).values(**values)
        stmt = stmt.on_conflict_do_update(index_elements=keys, set_=assignments(stmt.excluded))
    elif dialect in ("mysql", "mariadb"):
        stmt = mysql.insert(model).values(**values)
        stmt = stmt.on_duplicate_key_update(list(assignments(stmt.inserted).items()))
    else:
        raise MergeConflictError(f"store dialect {dialect!r} has no atomic upsert")
    return session.execute(stmt)


def _set_archived(session, model, criteria, archived: bool, actor_id: Optional[int], now: datetime) -> int:
    """Flip ``is_archived`` on every matching row in one UPDATE statement."""
    values = {
        "is_archived": archived,
        "archived_at": now if archived else None,
        "archived_by_user_id": actor_id if archived else None,
    }
    if hasattr(model, "updated_at"):
        values["updated_at"] = now
    stmt = (
        update(model)
        .where(*criteria, model.is_archived == (not archived))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return session.execute(stmt).rowcount


class UserRepository:
    def __init__(self, db: Database):
        self.db = db

    def role_of(self, user_id: int) -> UserRole:
        with self.db.session() as session:
            role = session.scalar(select(User.role).where(User.id == user_id))
        if role is None:
            raise RecordNotFoundError(f"user {user_id} not found")
        return UserRole(role)


class ClassRepository:
    def __init__(self, db: Database):
        self.db = db

    def get_schedule(self, class_id: int) -> Optional[str]:
        """Raw schedule text; ``None`` when the class has none set."""
        with self.db.session() as session:
            school_class = session.get(SchoolClass, class_id)
            if school_class is None:
                raise RecordNotFoundError(f"class {class_id} not found")
            return school_class.schedule

    def classes_with_sheet_today(self, student_id: int, day: date) -> List[Tuple[int, Optional[str]]]:
        """(class_id, schedule) of active classes where the student already has a record for ``day``."""
        stmt = (
            select(SchoolClass.id, SchoolClass.schedule)
            .join(Enrollment, Enrollment.class_id == SchoolClass.id)
            .join(AttendanceRecord, and_(
                AttendanceRecord.class_id == Enrollment.class_id,
                AttendanceRecord.student_user_id == Enrollment.student_user_id,
                AttendanceRecord.date == day,
            ))
            .where(
                Enrollment.student_user_id == student_id,
                Enrollment.status == "active",
                SchoolClass.is_active.is_(True),
            )
            .order_by(SchoolClass.id)
        )
        with self.db.session() as session:
            return [(row.id, row.schedule) for row in session.execute(stmt)]


class EnrollmentRepository:
    def __init__(self, db: Database):
        self.db = db

    def active_students(self, class_id: int) -> List[int]:
        stmt = (
            select(Enrollment.student_user_id)
            .where(Enrollment.class_id == class_id, Enrollment.status == "active")
            .order_by(Enrollment.student_user_id)
        )
        with self.db.session() as session:
            return list(session.scalars(stmt))

    def is_enrolled(self, class_id: int, student_id: int) -> bool:
        stmt = select(Enrollment.student_user_id).where(
            Enrollment.class_id == class_id,
            Enrollment.student_user_id == student_id,
            Enrollment.status == "active",
        )
        with self.db.session() as session:
            return session.scalar(stmt) is not None


class LoginEventStore:
    """Login-session bookkeeping, and the read side the engine correlates against."""

    def __init__(self, db: Database, clock: Clock = datetime.now):
        self.db = db
        self.clock = clock

    def first_login_on(self, student_id: int, day: date) -> Optional[LoginEvent]:
        """Earliest successful login of ``day``, or ``None`` when there was none."""
        start, end = _day_bounds(day)
        stmt = (
            select(LoginLog)
            .where(
                LoginLog.user_id == student_id,
                LoginLog.login_status == "success",
                LoginLog.login_time >= start,
                LoginLog.login_time < end,
            )
            .order_by(LoginLog.login_time.asc(), LoginLog.id.asc())
            .limit(1)
        )
        with self.db.session() as session:
            log = session.scalar(stmt)
            if log is None:
                return None
            return LoginEvent(
                user_id=log.user_id,
                login_at=log.login_time,
                logout_at=log.logout_time,
                pc_identifier=log.pc_number,
            )

    def record_login(self, user_id: int, pc_number: Optional[str], at: Optional[datetime] = None) -> LoginEvent:
        login_time = at or self.clock()
        with self.db.session() as session:
            log = LoginLog(user_id=user_id, pc_number=pc_number, login_time=login_time, login_status="success")
            session.add(log)
            session.flush()
            log_id = log.id
        logger.info(f"Login logged: id={log_id}, user={user_id}, pc={pc_number}")
        return LoginEvent(user_id=user_id, login_at=login_time, pc_identifier=pc_number)

    def record_logout(self, user_id: int, at: Optional[datetime] = None) -> bool:
        """Stamp the user's most recent open session. False when none is open."""
        logout_time = at or self.clock()
        with self.db.session() as session:
            log = session.scalar(
                select(LoginLog)
                .where(LoginLog.user_id == user_id, LoginLog.logout_time.is_(None))
                .order_by(LoginLog.login_time.desc(), LoginLog.id.desc())
                .limit(1)
            )
            if log is None:
                logger.info(f"No active login log to close for user {user_id}")
                return False
            log.logout_time = logout_time
        logger.info(f"Logout logged: user={user_id}")
        return True

    def set_archived(self, day: date, archived: bool, actor_id: Optional[int] = None) -> int:
        start, end = _day_bounds(day)
        criteria = (LoginLog.login_time >= start, LoginLog.login_time < end)
        try:
            with self.db.session() as session:
                return _set_archived(session, LoginLog, criteria, archived, actor_id, self.clock())
        except SQLAlchemyError as e:
            logger.error(f"Failed to {'archive' if archived else 'unarchive'} login logs for {day}: {e}")
            raise ArchiveTransitionError(f"failed to update login logs for {day}") from e


class FeedbackStore:
    def __init__(self, db: Database, clock: Clock = datetime.now):
        self.db = db
        self.clock = clock

    def set_archived(self, day: date, archived: bool, actor_id: Optional[int] = None) -> int:
        start, end = _day_bounds(day)
        criteria = (Feedback.date_submitted >= start, Feedback.date_submitted < end)
        try:
            with self.db.session() as session:
                return _set_archived(session, Feedback, criteria, archived, actor_id, self.clock())
        except SQLAlchemyError as e:
            logger.error(f"Failed to {'archive' if archived else 'unarchive'} feedback for {day}: {e}")
            raise ArchiveTransitionError(f"failed to update feedback for {day}") from e


def _merge_assignments(new) -> Dict[str, object]:
    """Field-level merge of an incoming classification into a stored record.

    Order matters for MySQL: status and remarks read the stored time_in.
    """
    stored = AttendanceRecord.__table__.c
    return {
        # Incoming status overwrites the stored one, with one exception: when
        # the incoming classification has no login (absent) but the stored row
        # already holds a time_in, the stored status stays. Status follows the
        # sticky time_in below.
        "status": case(
            (and_(new.time_in.is_(None), stored.time_in.isnot(None)), stored.status),
            else_=new.status,
        ),
        "remarks": case(
            (and_(
                new.time_in.isnot(None),
                or_(stored.remarks.is_(None), stored.remarks == "", stored.remarks == NOT_LOGGED_IN_REMARK),
            ), null()),
            else_=stored.remarks,
        ),
        "pc_number": case(
            (and_(new.pc_number.isnot(None), new.pc_number != ""), new.pc_number),
            else_=stored.pc_number,
        ),
        "time_in": func.coalesce(new.time_in, stored.time_in),
        "time_out": func.coalesce(new.time_out, stored.time_out),
        "updated_at": new.updated_at,
    }


def _initialize_assignments(new) -> Dict[str, object]:
    stored = AttendanceRecord.__table__.c
    return {
        "remarks": case(
            (and_(stored.time_in.is_(None), or_(stored.remarks.is_(None), stored.remarks == "")),
             NOT_LOGGED_IN_REMARK),
            else_=stored.remarks,
        ),
    }


def _touch_sheet(new) -> Dict[str, object]:
    return {"updated_at": new.updated_at}


_RECORD_KEY = ["class_id", "student_user_id", "date"]


class AttendanceStore:
    def __init__(self, db: Database, clock: Clock = datetime.now):
        self.db = db
        self.clock = clock

    def ensure_sheet(self, session, class_id: int, day: date, actor_id: Optional[int]):
        now = self.clock()
        values = {"class_id": class_id, "date": day, "created_by": actor_id, "created_at": now, "updated_at": now}
        _upsert(session, AttendanceSheet, values, ["class_id", "date"], _touch_sheet)

    def upsert_merged(self, class_id: int, student_id: int, day: date, classified: Classification):
        """Insert the classification, or merge it into the existing record for the key."""
        now = self.clock()
        values = {
            "class_id": class_id,
            "student_user_id": student_id,
            "date": day,
            "time_in": classified.time_in,
            "time_out": classified.time_out,
            "pc_number": classified.pc_identifier or None,
            "status": AttendanceStatus(classified.status).value,
            "remarks": classified.remarks,
            "is_archived": False,
            "created_at": now,
            "updated_at": now,
        }
        try:
            with self.db.session() as session:
                _upsert(session, AttendanceRecord, values, _RECORD_KEY, _merge_assignments)
        except IntegrityError as e:
            logger.warning(f"Attendance upsert rejected: class={class_id}, student={student_id}, date={day}: {e}")
            raise MergeConflictError(
                f"could not merge attendance for student {student_id} in class {class_id} on {day}"
            ) from e

    def initialize_sheet(self, class_id: int, day: date, student_ids: List[int], actor_id: Optional[int]) -> int:
        """Open the sheet and give every student an absent record; existing records keep their data."""
        now = self.clock()
        with self.db.session() as session:
            self.ensure_sheet(session, class_id, day, actor_id)
            for student_id in student_ids:
                values = {
                    "class_id": class_id,
                    "student_user_id": student_id,
                    "date": day,
                    "status": AttendanceStatus.absent.value,
                    "remarks": NOT_LOGGED_IN_REMARK,
                    "is_archived": False,
                    "created_at": now,
                    "updated_at": now,
                }
                _upsert(session, AttendanceRecord, values, _RECORD_KEY, _initialize_assignments)
        return len(student_ids)

    def open_sheet(self, class_id: int, day: date, actor_id: Optional[int]):
        with self.db.session() as session:
            self.ensure_sheet(session, class_id, day, actor_id)

    def get_record(self, class_id: int, student_id: int, day: date) -> Optional[AttendanceRecord]:
        with self.db.session() as session:
            return session.get(AttendanceRecord, (class_id, student_id, day))

    def class_attendance(self, class_id: int, day: date) -> List[dict]:
        """One row per actively enrolled student; ``status`` is None where no record exists yet."""
        stmt = (
            select(Enrollment.student_user_id, AttendanceRecord)
            .select_from(Enrollment)
            .outerjoin(AttendanceRecord, and_(
                AttendanceRecord.class_id == Enrollment.class_id,
                AttendanceRecord.student_user_id == Enrollment.student_user_id,
                AttendanceRecord.date == day,
            ))
            .where(Enrollment.class_id == class_id, Enrollment.status == "active")
            .order_by(Enrollment.student_user_id)
        )
        rows = []
        with self.db.session() as session:
            for student_id, record in session.execute(stmt):
                rows.append({
                    "class_id": class_id,
                    "student_user_id": student_id,
                    "date": day,
                    "time_in": record.time_in if record else None,
                    "time_out": record.time_out if record else None,
                    "pc_number": record.pc_number if record else None,
                    "status": record.status if record else None,
                    "remarks": record.remarks if record else None,
                    "is_archived": record.is_archived if record else False,
                })
        return rows

    def update_record(self, class_id: int, student_id: int, day: date, *, time_in=None, time_out=None,
                      pc_number=None, status: AttendanceStatus, remarks=None):
        """Manual edit: every field is overwritten with what the teacher entered."""
        stmt = (
            update(AttendanceRecord)
            .where(
                AttendanceRecord.class_id == class_id,
                AttendanceRecord.student_user_id == student_id,
                AttendanceRecord.date == day,
            )
            .values(
                time_in=time_in,
                time_out=time_out,
                pc_number=pc_number or None,
                status=AttendanceStatus(status).value,
                remarks=remarks or None,
                updated_at=self.clock(),
            )
            .execution_options(synchronize_session=False)
        )
        with self.db.session() as session:
            if session.execute(stmt).rowcount == 0:
                raise RecordNotFoundError(
                    f"no attendance record for student {student_id} in class {class_id} on {day}"
                )

    def set_archived(self, class_id: int, day: date, archived: bool, actor_id: Optional[int] = None) -> int:
        criteria = (AttendanceRecord.class_id == class_id, AttendanceRecord.date == day)
        try:
            with self.db.session() as session:
                return _set_archived(session, AttendanceRecord, criteria, archived, actor_id, self.clock())
        except SQLAlchemyError as e:
            logger.error(f"Failed to {'archive' if archived else 'unarchive'} sheet class={class_id}, date={day}: {e}")
            raise ArchiveTransitionError(f"failed to update attendance sheet for class {class_id} on {day}") from e

    def archived_sheets(self, teacher_id: Optional[int] = None) -> List[dict]:
        def count(status: AttendanceStatus):
            return func.sum(case((AttendanceRecord.status == status.value, 1), else_=0))

        stmt = (
            select(
                AttendanceRecord.class_id,
                AttendanceRecord.date,
                SchoolClass.subject_code,
                SchoolClass.schedule,
                func.count().label("student_count"),
                count(AttendanceStatus.present).label("present_count"),
                count(AttendanceStatus.absent).label("absent_count"),
                count(AttendanceStatus.late).label("late_count"),
                count(AttendanceStatus.excused).label("excused_count"),
            )
            .join(SchoolClass, SchoolClass.id == AttendanceRecord.class_id)
            .where(AttendanceRecord.is_archived.is_(True))
            .group_by(AttendanceRecord.class_id, AttendanceRecord.date, SchoolClass.subject_code, SchoolClass.schedule)
            .order_by(AttendanceRecord.date.desc(), AttendanceRecord.class_id)
        )
        if teacher_id is not None:
            stmt = stmt.where(SchoolClass.teacher_user_id == teacher_id)
        with self.db.session() as session:
            return [dict(row._mapping) for row in session.execute(stmt)]
