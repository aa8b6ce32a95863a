import os
import tempfile

# Must be set before lab_attendance.utils.logger is imported.
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "lab_attendance_test_logs"))

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

import pytest

from lab_attendance.database import Database
from lab_attendance.engine.service import AttendanceEngine
from lab_attendance.models import (
    Enrollment, Feedback, LoginLog, SchoolClass, User,
)

# 2026-10-12 is a Monday.
MONDAY = datetime(2026, 10, 12, 9, 0)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class Seeder:
    """Writes fixture rows straight into the store."""

    def __init__(self, database: Database):
        self.database = database

    def user(self, user_id: int, role: str = "student") -> int:
        with self.database.session() as session:
            session.add(User(id=user_id, username=f"user{user_id}", name=f"User {user_id}", role=role))
        return user_id

    def school_class(self, class_id: int, schedule, teacher_id=None, is_active=True) -> int:
        with self.database.session() as session:
            session.add(SchoolClass(
                id=class_id, subject_code=f"IT{class_id}", schedule=schedule,
                teacher_user_id=teacher_id, is_active=is_active,
            ))
        return class_id

    def enroll(self, class_id: int, *student_ids: int, status: str = "active"):
        with self.database.session() as session:
            for student_id in student_ids:
                if session.get(User, student_id) is None:
                    session.add(User(id=student_id, username=f"user{student_id}", role="student"))
                session.add(Enrollment(class_id=class_id, student_user_id=student_id, status=status))

    def login(self, user_id: int, at: datetime, logout_at=None, pc="PC-01", status="success"):
        with self.database.session() as session:
            session.add(LoginLog(
                user_id=user_id, login_time=at, logout_time=logout_at,
                pc_number=pc, login_status=status,
            ))

    def feedback(self, student_id: int, submitted: datetime, pc="PC-01"):
        with self.database.session() as session:
            session.add(Feedback(
                student_user_id=student_id, pc_number=pc,
                equipment_condition="Good", date_submitted=submitted,
            ))


@pytest.fixture
def database(tmp_path):
    database = Database()
    database.connect(f"sqlite:///{tmp_path / 'attendance.db'}")
    yield database
    database.dispose()


@pytest.fixture
def clock():
    return FakeClock(MONDAY)


@pytest.fixture
def engine(database, clock):
    engine = AttendanceEngine.from_database(
        database, clock=clock, executor=ThreadPoolExecutor(max_workers=1)
    )
    yield engine
    engine.shutdown(wait=True)


@pytest.fixture
def seed(database):
    return Seeder(database)
