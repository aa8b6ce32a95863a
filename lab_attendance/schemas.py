from pydantic import BaseModel, ConfigDict, Field
import datetime as dt
from typing import List, Optional

from lab_attendance.models import AttendanceStatus

# --- Attendance Schemas ---

class AttendanceRowOut(BaseModel):
    """One student's line on an attendance sheet."""
    class_id: int
    student_user_id: int
    date: dt.date
    time_in: Optional[dt.time] = None
    time_out: Optional[dt.time] = None
    pc_number: Optional[str] = None
    # None until a record exists for the student
    status: Optional[AttendanceStatus] = None
    remarks: Optional[str] = None
    is_archived: bool = False

    model_config = ConfigDict(from_attributes=True)


class AttendanceUpdateIn(BaseModel):
    """Manual teacher edit; every field overwrites the stored one."""
    status: AttendanceStatus
    time_in: Optional[dt.time] = None
    time_out: Optional[dt.time] = None
    pc_number: Optional[str] = None
    remarks: Optional[str] = None


class SheetActionIn(BaseModel):
    actor_id: Optional[int] = Field(None, description="User performing the action.")


class GenerationOut(BaseModel):
    class_id: int
    date: dt.date
    succeeded: int
    failed: int
    failed_student_ids: List[int]


class InitializeOut(BaseModel):
    class_id: int
    date: dt.date
    students: int


class ArchiveOut(BaseModel):
    """Number of rows that changed state."""
    affected: int


class ArchivedSheetOut(BaseModel):
    class_id: int
    date: dt.date
    subject_code: Optional[str] = None
    schedule: Optional[str] = None
    student_count: int
    present_count: int
    absent_count: int
    late_count: int
    excused_count: int

# --- Session Schemas ---

class LoginIn(BaseModel):
    user_id: int = Field(..., description="Authenticated user id.")
    pc_number: Optional[str] = Field(None, description="Hostname of the lab PC.")
    at: Optional[dt.datetime] = Field(None, description="Login time; defaults to now.")


class LoginOut(BaseModel):
    user_id: int
    login_at: dt.datetime
    pc_number: Optional[str] = None
    auto_mark_dispatched: bool


class LogoutIn(BaseModel):
    user_id: int
    at: Optional[dt.datetime] = None

# --- Utility Schemas ---

class Message(BaseModel):
    """Generic message schema for sending simple status responses."""
    message: str
