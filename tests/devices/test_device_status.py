from datetime import datetime, timedelta

from fakes import make_device
from punch_clock.devices.status import heartbeat_age_seconds, is_effectively_online

NOW = datetime(2024, 3, 4, 8, 0)


def test_recent_heartbeat_keeps_device_online():
    device = make_device(1)

    assert heartbeat_age_seconds(device, NOW + timedelta(seconds=30)) == 30
    assert is_effectively_online(device, now=NOW + timedelta(seconds=30), offline_after_seconds=120)


def test_stale_heartbeat_reports_device_offline():
    device = make_device(1)

    assert not is_effectively_online(device, now=NOW + timedelta(seconds=120), offline_after_seconds=120)


def test_offline_flag_wins_over_fresh_heartbeat():
    device = make_device(1, online=False)

    assert not is_effectively_online(device, now=datetime(2024, 3, 1, 8, 0), offline_after_seconds=120)
