from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from lab_attendance import config
from lab_attendance.engine.service import AttendanceEngine

security = HTTPBearer(auto_error=False)


def get_engine(request: Request) -> AttendanceEngine:
    return request.app.state.attendance_engine


def verify_admin(token: HTTPAuthorizationCredentials = Depends(security)):
    """Checks the bearer token against ADMIN_SECRET. With no secret configured every request is refused."""
    if not config.ADMIN_SECRET or token is None or token.credentials != config.ADMIN_SECRET:
        raise HTTPException(status_code=403, detail="Forbidden: Invalid Admin Key")
    return True
