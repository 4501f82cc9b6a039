import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_db"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

LOCK_TIMEOUT_SECONDS = float(os.getenv("LOCK_TIMEOUT_SECONDS", "5"))
FINALIZATION_GRACE_MINUTES = int(os.getenv("FINALIZATION_GRACE_MINUTES", "15"))
FINALIZATION_WORKERS = int(os.getenv("FINALIZATION_WORKERS", "1"))

# Monday=0 ... Sunday=6
WEEKLY_OFF_DAYS = tuple(int(d) for d in os.getenv("WEEKLY_OFF_DAYS", "5,6").split(",") if d.strip())

# Used when neither an assignment nor a default row exists in the shifts table
DEFAULT_SHIFT = {
    "shift_name": os.getenv("DEFAULT_SHIFT_NAME", "Office hours"),
    "start_time": os.getenv("DEFAULT_SHIFT_START", "09:00"),
    "end_time": os.getenv("DEFAULT_SHIFT_END", "18:00"),
    "grace_period_minutes": int(os.getenv("DEFAULT_SHIFT_GRACE_MINUTES", "15")),
    "early_departure_threshold_minutes": int(os.getenv("DEFAULT_SHIFT_EARLY_THRESHOLD_MINUTES", "0")),
    "full_day_hours": float(os.getenv("DEFAULT_SHIFT_FULL_DAY_HOURS", "8")),
    "half_day_hours": float(os.getenv("DEFAULT_SHIFT_HALF_DAY_HOURS", "4")),
}
