import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_test_db"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

LOCK_TIMEOUT_SECONDS = 1.0
FINALIZATION_GRACE_MINUTES = 15
FINALIZATION_WORKERS = 1

WEEKLY_OFF_DAYS = (5, 6)

DEFAULT_SHIFT = {
    "shift_name": "Office hours",
    "start_time": "09:00",
    "end_time": "18:00",
    "grace_period_minutes": 15,
    "early_departure_threshold_minutes": 0,
    "full_day_hours": 8.0,
    "half_day_hours": 4.0,
}
