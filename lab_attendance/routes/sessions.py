from fastapi import APIRouter, BackgroundTasks, Depends

from lab_attendance.engine.service import AttendanceEngine
from lab_attendance.routes.dependencies import get_engine
from lab_attendance.schemas import LoginIn, LoginOut, LogoutIn, Message

router = APIRouter(prefix="/sessions", tags=["Sessions"])


@router.post("/login", response_model=LoginOut)
def login(body: LoginIn, background_tasks: BackgroundTasks, engine: AttendanceEngine = Depends(get_engine)):
    """Logs an authenticated login. Attendance auto-mark runs after the response is sent."""
    event, role = engine.record_login(body.user_id, body.pc_number, body.at)
    if role.marks_attendance:
        background_tasks.add_task(engine.run_auto_mark, event.user_id, event.login_at, event.pc_identifier)
    return LoginOut(
        user_id=event.user_id,
        login_at=event.login_at,
        pc_number=event.pc_identifier,
        auto_mark_dispatched=role.marks_attendance,
    )


@router.post("/logout", response_model=Message)
def logout(body: LogoutIn, engine: AttendanceEngine = Depends(get_engine)):
    # Already logged out is not an error.
    if engine.record_logout(body.user_id, body.at):
        return Message(message="Logged out")
    return Message(message="No active session")
