from __future__ import annotations

from dataclasses import replace

import pytest

from fakes import TEST_LOGGER, ScriptedFleet, make_device
from punch_clock.core.exceptions import ConnectivityError
from punch_clock.devices.registry import ConnectionRegistry


class FakeClock:
    def __init__(self):
        self.value = 0.0

    def __call__(self) -> float:
        return self.value


def _registry(fleet, clock, *, max_idle_seconds=300):
    return ConnectionRegistry(
        fleet, logger=TEST_LOGGER, timeout_seconds=1, max_idle_seconds=max_idle_seconds, clock=clock
    )


def test_sessions_reuse_a_fresh_connection():
    fleet, clock = ScriptedFleet(), FakeClock()
    registry = _registry(fleet, clock)
    device = make_device(1)

    with registry.session(device) as first:
        pass
    clock.value = 200
    with registry.session(device) as second:
        pass

    assert first is second
    assert fleet.created[1] == 1
    assert len(registry) == 1


def test_idle_connection_is_replaced():
    fleet, clock = ScriptedFleet(), FakeClock()
    registry = _registry(fleet, clock, max_idle_seconds=60)
    device = make_device(1)

    with registry.session(device) as first:
        pass
    clock.value = 61
    with registry.session(device) as second:
        pass

    assert first is not second
    assert not first.is_connected
    assert fleet.created[1] == 2


def test_error_inside_session_drops_the_connection():
    fleet, clock = ScriptedFleet(), FakeClock()
    registry = _registry(fleet, clock)
    device = make_device(1)

    with pytest.raises(RuntimeError):
        with registry.session(device) as gateway:
            raise RuntimeError("read failed")

    assert not gateway.is_connected
    assert len(registry) == 0


def test_unreachable_or_unaddressed_devices_raise_connectivity_error():
    fleet, clock = ScriptedFleet(), FakeClock()
    registry = _registry(fleet, clock)
    fleet.terminal(1).reachable = False

    with pytest.raises(ConnectivityError):
        with registry.session(make_device(1)):
            pass
    with pytest.raises(ConnectivityError, match="no IP address"):
        with registry.session(replace(make_device(2), ip_address=None)):
            pass
    assert len(registry) == 0


def test_leaving_the_registry_closes_every_connection():
    fleet, clock = ScriptedFleet(), FakeClock()
    gateways = []

    with _registry(fleet, clock) as registry:
        for device_id in (1, 2):
            with registry.session(make_device(device_id)) as gateway:
                gateways.append(gateway)
        assert len(registry) == 2

    assert len(registry) == 0
    assert not any(g.is_connected for g in gateways)


def test_stale_connection_still_in_use_is_not_replaced():
    fleet, clock = ScriptedFleet(), FakeClock()
    registry = _registry(fleet, clock, max_idle_seconds=60)
    device = make_device(1)

    with pytest.raises(RuntimeError):
        with registry.session(device) as held:
            clock.value = 61
            with pytest.raises(ConnectivityError, match="busy"):
                with registry.session(device):
                    pass
            raise RuntimeError("late failure")

    assert fleet.created[1] == 1
    assert not held.is_connected
    assert len(registry) == 0


def test_late_failure_leaves_a_replacement_connection_open():
    fleet, clock = ScriptedFleet(), FakeClock()
    registry = _registry(fleet, clock)
    device = make_device(1)

    with pytest.raises(RuntimeError):
        with registry.session(device) as old:
            registry.close(device.device_id)
            with registry.session(device) as replacement:
                pass
            raise RuntimeError("late failure")

    assert old is not replacement
    assert replacement.is_connected
    assert len(registry) == 1
    with registry.session(device) as again:
        assert again is replacement


def test_probe_reuses_the_registered_connection():
    fleet, clock = ScriptedFleet(), FakeClock()
    registry = _registry(fleet, clock)
    fleet.terminal(2).reachable = False

    assert registry.probe(make_device(1)) is True
    assert registry.probe(make_device(1)) is True
    assert registry.probe(make_device(2)) is False
    assert fleet.created[1] == 1


def test_probe_does_not_open_a_second_client_while_a_session_runs():
    fleet, clock = ScriptedFleet(), FakeClock()
    registry = _registry(fleet, clock)
    device = make_device(1)

    with registry.session(device):
        assert registry.probe(device) is True

    assert fleet.created[1] == 1
