from __future__ import annotations

from datetime import date, timedelta

from ..core.exceptions import ValidationError


def require_non_negative(value: float, field_name: str) -> float:
    if value is None or value < 0:
        raise ValidationError(f"{field_name} must be >= 0")
    return value


def require_positive_duration(value: timedelta, field_name: str) -> timedelta:
    if value is None or value <= timedelta(0):
        raise ValidationError(f"{field_name} must be a positive duration")
    return value


def require_date_order(start: date, end: date) -> None:
    if end < start:
        raise ValidationError(f"end date {end} is before start date {start}")
