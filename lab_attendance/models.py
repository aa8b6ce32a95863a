from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Integer, PrimaryKeyConstraint,
    String, Time, UniqueConstraint,
)
from sqlalchemy.orm import declarative_base
from datetime import datetime
import enum

from lab_attendance.roles import UserRole

Base = declarative_base()

# Remark placed on a record until the student's first login of the day.
NOT_LOGGED_IN_REMARK = "Not yet logged in"


class AttendanceStatus(str, enum.Enum):
    present = "present"
    late = "late"
    absent = "absent"
    excused = "excused"


class User(Base):
    """Any account of the lab system; the role decides what it can do."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=True)
    role = Column(String, default=UserRole.student.value, nullable=False)
    created_at = Column(DateTime, default=datetime.now)

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"


class SchoolClass(Base):
    """A class meeting in the lab. ``schedule`` is free text, e.g. "MWF 8:00 AM - 10:00 AM"."""
    __tablename__ = "classes"

    id = Column(Integer, primary_key=True, index=True)
    subject_code = Column(String, nullable=True)
    teacher_user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    schedule = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<SchoolClass(id={self.id}, schedule={self.schedule})>"


class Enrollment(Base):
    """Class list entry; only ``status == "active"`` counts for attendance."""
    __tablename__ = "classlist"
    __table_args__ = (PrimaryKeyConstraint("class_id", "student_user_id"),)

    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)
    student_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String, default="active", nullable=False)
    enrolled_at = Column(DateTime, default=datetime.now)


class LoginLog(Base):
    """One login session on a lab PC."""
    __tablename__ = "login_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    pc_number = Column(String, nullable=True)
    login_time = Column(DateTime, nullable=False, index=True)
    logout_time = Column(DateTime, nullable=True)
    login_status = Column(String, default="success", nullable=False)
    is_archived = Column(Boolean, default=False, nullable=False)
    archived_at = Column(DateTime, nullable=True)
    archived_by_user_id = Column(Integer, nullable=True)

    def __repr__(self):
        return f"<LoginLog(user_id={self.user_id}, login_time={self.login_time})>"


class AttendanceSheet(Base):
    """Marks that attendance was opened for a class on a date."""
    __tablename__ = "attendance_sheets"
    __table_args__ = (UniqueConstraint("class_id", "date", name="uq_attendance_sheet"),)

    id = Column(Integer, primary_key=True, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)
    date = Column(Date, nullable=False)
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class AttendanceRecord(Base):
    """One student's attendance in one class on one day."""
    __tablename__ = "attendance"
    __table_args__ = (PrimaryKeyConstraint("class_id", "student_user_id", "date"),)

    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)
    student_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    date = Column(Date, nullable=False)
    time_in = Column(Time, nullable=True)
    time_out = Column(Time, nullable=True)
    pc_number = Column(String, nullable=True)
    status = Column(String, default=AttendanceStatus.absent.value, nullable=False)
    remarks = Column(String, nullable=True)
    is_archived = Column(Boolean, default=False, nullable=False)
    archived_at = Column(DateTime, nullable=True)
    archived_by_user_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    def __repr__(self):
        return (f"<AttendanceRecord(class_id={self.class_id}, student={self.student_user_id}, "
                f"date={self.date}, status={self.status})>")


class Feedback(Base):
    """Equipment condition report filed by a student at logout."""
    __tablename__ = "feedback"

    id = Column(Integer, primary_key=True, index=True)
    student_user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    pc_number = Column(String, nullable=True)
    equipment_condition = Column(String, nullable=True)
    comments = Column(String, nullable=True)
    date_submitted = Column(DateTime, default=datetime.now, index=True)
    is_archived = Column(Boolean, default=False, nullable=False)
    archived_at = Column(DateTime, nullable=True)
    archived_by_user_id = Column(Integer, nullable=True)
