import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "punch_clock"),
}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE") or None

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
DEVICE_GATEWAY_FACTORY = os.getenv("DEVICE_GATEWAY_FACTORY", "")

DEVICE_TIMEOUT_SECONDS = float(os.getenv("DEVICE_TIMEOUT_SECONDS", "5"))
SYNC_DEADLINE_FACTOR = float(os.getenv("SYNC_DEADLINE_FACTOR", "6"))
SYNC_MAX_WORKERS = int(os.getenv("SYNC_MAX_WORKERS", "4"))
CONNECTION_MAX_IDLE_SECONDS = float(os.getenv("CONNECTION_MAX_IDLE_SECONDS", "300"))
DEVICE_OFFLINE_AFTER_SECONDS = float(os.getenv("DEVICE_OFFLINE_AFTER_SECONDS", "120"))
SHORT_SHIFT_MINIMUM_HOURS = float(os.getenv("SHORT_SHIFT_MINIMUM_HOURS", "0"))

SCHEDULE = {
    "refresh_device_status": os.getenv("SCHEDULE_REFRESH_DEVICE_STATUS", "every 1m"),
    "sync_all_devices": os.getenv("SCHEDULE_SYNC_ALL_DEVICES", "every 1h"),
    "process_yesterday": os.getenv("SCHEDULE_PROCESS_YESTERDAY", "daily 01:00"),
    "process_pending_punches": os.getenv("SCHEDULE_PROCESS_PENDING_PUNCHES", "every 30m"),
    "sync_all_staff": os.getenv("SCHEDULE_SYNC_ALL_STAFF", "every 6h"),
    "remove_inactive_staff_from_all_devices": os.getenv("SCHEDULE_REMOVE_INACTIVE_STAFF", "daily 02:00"),
}
