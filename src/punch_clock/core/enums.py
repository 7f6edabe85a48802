from __future__ import annotations

from enum import Enum


class PunchType(str, Enum):
    """Kind of reading captured by a terminal."""

    IN = "IN"
    OUT = "OUT"
    BREAK_OUT = "BREAK_OUT"
    BREAK_IN = "BREAK_IN"
    OVERTIME_IN = "OVERTIME_IN"
    OVERTIME_OUT = "OVERTIME_OUT"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_device_code(cls, code: int | None) -> "PunchType":
        return _PUNCH_CODES.get(code, cls.UNKNOWN)


_PUNCH_CODES = {
    0: PunchType.IN,
    1: PunchType.OUT,
    2: PunchType.BREAK_OUT,
    3: PunchType.BREAK_IN,
    4: PunchType.OVERTIME_IN,
    5: PunchType.OVERTIME_OUT,
}


class VerificationMode(str, Enum):
    PASSWORD = "PASSWORD"
    FINGERPRINT = "FINGERPRINT"
    CARD = "CARD"
    FACE = "FACE"
    MANUAL = "MANUAL"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_device_code(cls, code: int | None) -> "VerificationMode":
        return _VERIFY_CODES.get(code, cls.UNKNOWN)


_VERIFY_CODES = {
    0: VerificationMode.PASSWORD,
    1: VerificationMode.FINGERPRINT,
    2: VerificationMode.CARD,
    3: VerificationMode.FACE,
}


class AttendanceStatus(str, Enum):
    """Computed status of a daily attendance record."""

    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    INCOMPLETE = "INCOMPLETE"


class AnomalyFlag(str, Enum):
    MISSING_CHECKIN = "missing_checkin"
    MISSING_CHECKOUT = "missing_checkout"
    ODD_PUNCH_COUNT = "odd_punch_count"
    SHORT_SHIFT = "short_shift"
    LATE_ARRIVAL = "late_arrival"
    EARLY_DEPARTURE = "early_departure"


class SyncType(str, Enum):
    ATTENDANCE = "ATTENDANCE"
    STAFF = "STAFF"
    CLEANUP = "CLEANUP"


class SyncStatus(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"

    @property
    def is_terminal(self) -> bool:
        return self is not SyncStatus.IN_PROGRESS
