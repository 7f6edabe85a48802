import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "punch_clock"),
}

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
LOG_FILE = os.getenv("LOG_FILE") or None

# If enabled, schema.sql is applied on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

# "module:callable" building a DeviceGateway per device; empty uses simulated terminals
DEVICE_GATEWAY_FACTORY = os.getenv("DEVICE_GATEWAY_FACTORY", "")

DEVICE_TIMEOUT_SECONDS = float(os.getenv("DEVICE_TIMEOUT_SECONDS", "5"))
SYNC_DEADLINE_FACTOR = float(os.getenv("SYNC_DEADLINE_FACTOR", "6"))
SYNC_MAX_WORKERS = int(os.getenv("SYNC_MAX_WORKERS", "4"))
CONNECTION_MAX_IDLE_SECONDS = float(os.getenv("CONNECTION_MAX_IDLE_SECONDS", "300"))
DEVICE_OFFLINE_AFTER_SECONDS = float(os.getenv("DEVICE_OFFLINE_AFTER_SECONDS", "120"))
SHORT_SHIFT_MINIMUM_HOURS = float(os.getenv("SHORT_SHIFT_MINIMUM_HOURS", "0"))

SCHEDULE = {
    "refresh_device_status": "every 1m",
    "sync_all_devices": "every 1h",
    "process_yesterday": "daily 01:00",
    "process_pending_punches": "every 30m",
    "sync_all_staff": "every 6h",
    "remove_inactive_staff_from_all_devices": "daily 02:00",
}
