import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys

from lab_attendance import config

# --- 1. DEFINE PATHS AND CREATE DIRECTORY ---

LOG_DIR = Path(config.LOG_DIR)

try:
    LOG_DIR.mkdir(exist_ok=True, parents=True)
except OSError as e:
    # Logging isn't set up yet, so report on stderr directly.
    print(f"ERROR: Could not create log directory at {LOG_DIR}: {e}", file=sys.stderr)

LOG_FILE = LOG_DIR / "lab_attendance.log"


# --- 2. CONFIGURE LOGGER AND LEVEL ---

logger = logging.getLogger("lab_attendance")
logger.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))


# --- 3. DEFINE HANDLERS ---

formatter = logging.Formatter(
    "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
)

# Re-imports (reloads in tests) must not stack handlers.
if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if LOG_DIR.is_dir():
        # Rotates when 5MB
        file_handler = RotatingFileHandler(
            LOG_FILE,
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

logger.debug("Logging configuration loaded.")
