import os
from dotenv import load_dotenv

load_dotenv()

# --- STORE ---
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./lab_attendance.db")

# --- LOGGING ---
LOG_DIR   = os.getenv("LOG_DIR", "logs")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# --- AUTO-MARK ---
AUTO_MARK_WORKERS = int(os.getenv("AUTO_MARK_WORKERS", "4"))

# --- ADMIN ---
# Bearer token for the log and feedback archive endpoints. Unset refuses every request.
ADMIN_SECRET = os.getenv("ADMIN_SECRET", "")
