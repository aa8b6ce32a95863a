from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends

from lab_attendance.engine.service import AttendanceEngine
from lab_attendance.routes.dependencies import get_engine, verify_admin
from lab_attendance.schemas import ArchiveOut, SheetActionIn

# All routes here require the admin bearer token (when one is configured).
router = APIRouter(
    tags=["Admin & Archives"],
    dependencies=[Depends(verify_admin)],
)


@router.post("/logs/{day}/archive", response_model=ArchiveOut)
def archive_logs(day: date, body: Optional[SheetActionIn] = None, engine: AttendanceEngine = Depends(get_engine)):
    return ArchiveOut(affected=engine.archive_logs(day, body.actor_id if body else None))


@router.post("/logs/{day}/unarchive", response_model=ArchiveOut)
def unarchive_logs(day: date, engine: AttendanceEngine = Depends(get_engine)):
    return ArchiveOut(affected=engine.unarchive_logs(day))


@router.post("/feedback/{day}/archive", response_model=ArchiveOut)
def archive_feedback(day: date, body: Optional[SheetActionIn] = None, engine: AttendanceEngine = Depends(get_engine)):
    return ArchiveOut(affected=engine.archive_feedback(day, body.actor_id if body else None))


@router.post("/feedback/{day}/unarchive", response_model=ArchiveOut)
def unarchive_feedback(day: date, engine: AttendanceEngine = Depends(get_engine)):
    return ArchiveOut(affected=engine.unarchive_feedback(day))
