"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import timedelta

DEFAULT_REQUIRED_HOURS = timedelta(hours=8)
DEFAULT_BREAK_DURATION = timedelta(minutes=30)
BREAK_THRESHOLD = timedelta(hours=6)
DEFAULT_GRACE_PERIOD_MINUTES = 15
DEFAULT_EARLY_LEAVE_THRESHOLD_MINUTES = 15

DEFAULT_DEVICE_PORT = 4370
DEFAULT_DEVICE_TIMEOUT_SECONDS = 5
DEFAULT_SYNC_DEADLINE_FACTOR = 6
DEFAULT_SYNC_MAX_WORKERS = 4
DEFAULT_CONNECTION_MAX_IDLE_SECONDS = 300
DEFAULT_OFFLINE_AFTER_SECONDS = 120
