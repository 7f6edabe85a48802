"""Punch Clock package.

Turns raw biometric punch events into daily attendance records and keeps the
fleet of terminals in sync. Organized by feature module (attendance, devices,
sync, ...) with Protocol-based repositories and plain service classes.
"""
