# lab_attendance/routes/attendance.py
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends

from lab_attendance.engine.service import AttendanceEngine
from lab_attendance.routes.dependencies import get_engine
from lab_attendance.schemas import (
    ArchivedSheetOut, ArchiveOut, AttendanceRowOut, AttendanceUpdateIn,
    GenerationOut, InitializeOut, Message, SheetActionIn,
)

router = APIRouter(tags=["Attendance"])


@router.post("/classes/{class_id}/attendance/{day}/initialize", response_model=InitializeOut)
def initialize_sheet(class_id: int, day: date, body: Optional[SheetActionIn] = None,
                     engine: AttendanceEngine = Depends(get_engine)):
    """Opens the sheet: every enrolled student starts absent / "Not yet logged in"."""
    actor_id = body.actor_id if body else None
    students = engine.initialize_sheet(class_id, day, actor_id)
    return InitializeOut(class_id=class_id, date=day, students=students)


@router.post("/classes/{class_id}/attendance/{day}/generate", response_model=GenerationOut)
def generate_attendance(class_id: int, day: date, body: Optional[SheetActionIn] = None,
                        engine: AttendanceEngine = Depends(get_engine)):
    """Classifies every enrolled student from the day's login logs."""
    result = engine.generate_attendance(class_id, day, body.actor_id if body else None)
    return GenerationOut(
        class_id=result.class_id,
        date=result.date,
        succeeded=result.succeeded,
        failed=result.failed,
        failed_student_ids=result.failed_student_ids,
    )


@router.get("/classes/{class_id}/attendance/{day}", response_model=List[AttendanceRowOut])
def get_class_attendance(class_id: int, day: date, engine: AttendanceEngine = Depends(get_engine)):
    return engine.class_attendance(class_id, day)


@router.put("/classes/{class_id}/attendance/{day}/students/{student_id}", response_model=Message)
def update_record(class_id: int, day: date, student_id: int, body: AttendanceUpdateIn,
                  engine: AttendanceEngine = Depends(get_engine)):
    engine.update_record(
        class_id, student_id, day,
        status=body.status,
        time_in=body.time_in,
        time_out=body.time_out,
        pc_number=body.pc_number,
        remarks=body.remarks,
    )
    return Message(message="Attendance record updated")


@router.post("/classes/{class_id}/attendance/{day}/archive", response_model=ArchiveOut)
def archive_sheet(class_id: int, day: date, body: Optional[SheetActionIn] = None,
                  engine: AttendanceEngine = Depends(get_engine)):
    return ArchiveOut(affected=engine.archive_sheet(class_id, day, body.actor_id if body else None))


@router.post("/classes/{class_id}/attendance/{day}/unarchive", response_model=ArchiveOut)
def unarchive_sheet(class_id: int, day: date, engine: AttendanceEngine = Depends(get_engine)):
    return ArchiveOut(affected=engine.unarchive_sheet(class_id, day))


@router.get("/attendance/archived", response_model=List[ArchivedSheetOut])
def get_archived_sheets(teacher_id: Optional[int] = None, engine: AttendanceEngine = Depends(get_engine)):
    """Archived sheets with per-status counts, optionally for one teacher's classes."""
    return engine.archived_sheets(teacher_id)
