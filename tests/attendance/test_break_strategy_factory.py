from datetime import time, timedelta

from punch_clock.attendance.factory import BreakStrategyFactory
from punch_clock.attendance.strategies.fixed_break_strategy import FixedBreakStrategy
from punch_clock.attendance.strategies.threshold_break_strategy import ThresholdBreakStrategy
from punch_clock.shifts.model import ShiftPolicy


def _policy(**overrides) -> ShiftPolicy:
    values = dict(
        shift_id=1,
        shift_name="Morning",
        start_time=time(8, 0),
        end_time=time(17, 0),
        required_hours=timedelta(hours=8),
    )
    values.update(overrides)
    return ShiftPolicy(**values)


def test_factory_without_policy_uses_default_threshold_rule():
    strategy = BreakStrategyFactory().for_policy(None)

    assert isinstance(strategy, ThresholdBreakStrategy)
    assert strategy.deduct(timedelta(hours=6)) == timedelta(0)
    assert strategy.deduct(timedelta(hours=6, minutes=1)) == timedelta(minutes=30)


def test_factory_auto_deduct_policy_always_deducts():
    strategy = BreakStrategyFactory().for_policy(_policy(break_duration=timedelta(hours=1), auto_deduct_break=True))

    assert isinstance(strategy, FixedBreakStrategy)
    assert strategy.deduct(timedelta(hours=2)) == timedelta(hours=1)


def test_factory_policy_break_applies_over_threshold_only():
    strategy = BreakStrategyFactory().for_policy(_policy(break_duration=timedelta(minutes=45)))

    assert isinstance(strategy, ThresholdBreakStrategy)
    assert strategy.deduct(timedelta(hours=5)) == timedelta(0)
    assert strategy.deduct(timedelta(hours=9)) == timedelta(minutes=45)


def test_factory_policy_without_break_falls_back_to_default():
    factory = BreakStrategyFactory()

    assert factory.for_policy(_policy(auto_deduct_break=True)) is factory.default_break
