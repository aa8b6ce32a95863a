from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lab_attendance import config
from lab_attendance.database import db
from lab_attendance.engine.service import AttendanceEngine
from lab_attendance.errors import AttendanceError
from lab_attendance.routes.admin import router as admin_router
from lab_attendance.routes.attendance import router as attendance_router
from lab_attendance.routes.sessions import router as sessions_router
from lab_attendance.utils.logger import logger


# --- LIFESPAN ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Lab Attendance API")
    db.connect(config.DATABASE_URL)
    app.state.attendance_engine = AttendanceEngine.from_database(db)
    yield
    logger.info("Shutting down")
    app.state.attendance_engine.shutdown(wait=True)
    db.dispose()


# --- APP ---
app = FastAPI(title="Lab Attendance API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AttendanceError)
async def attendance_error_handler(request: Request, exc: AttendanceError):
    logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Healthcheck endpoint
@app.get("/health")
def health():
    return {"status": "ok", "database": db.connected}


app.include_router(attendance_router)
app.include_router(sessions_router)
app.include_router(admin_router)


if __name__ == "__main__":
    import os
    import uvicorn
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("lab_attendance.main:app", host="0.0.0.0", port=port)
