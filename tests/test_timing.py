"""Billable-minute rounding and duration tests."""
from datetime import datetime, timedelta, timezone

import pytest

from cafe_pricing.engine.timing import calculate_duration, round_time_to_charge


@pytest.mark.parametrize("minutes", range(0, 8))
def test_free_tier_is_not_billed(minutes):
    assert round_time_to_charge(minutes) == 0


@pytest.mark.parametrize("low, high, billed", [
    (8, 22, 15),
    (23, 37, 30),
    (38, 52, 45),
    (53, 67, 60),
    (68, 82, 75),
])
def test_rounds_up_to_next_increment(low, high, billed):
    for minutes in range(low, high + 1):
        assert round_time_to_charge(minutes) == billed, f"{minutes} min should bill {billed}"


def test_documented_edges():
    assert round_time_to_charge(7) == 0
    assert round_time_to_charge(8) == 15
    assert round_time_to_charge(22) == 15
    assert round_time_to_charge(23) == 30
    assert round_time_to_charge(65) == 60


def test_monotonic_non_decreasing():
    billed = [round_time_to_charge(m) for m in range(0, 400)]
    assert billed == sorted(billed)


@pytest.mark.parametrize("bad", [-1, -500, float('nan'), float('inf'), float('-inf'), None, "abc", 10**400])
def test_invalid_input_bills_nothing(bad):
    assert round_time_to_charge(bad) == 0


def test_fractional_minutes_round_up():
    assert round_time_to_charge(7.5) == 15
    assert round_time_to_charge(22.0) == 15
    assert round_time_to_charge(22.1) == 30


def test_custom_free_tier_and_increment():
    assert round_time_to_charge(10, free_tier_minutes=10, increment_minutes=30) == 0
    assert round_time_to_charge(11, free_tier_minutes=10, increment_minutes=30) == 30


def test_duration_rounds_partial_minutes_up():
    start = datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)
    assert calculate_duration(start, start + timedelta(minutes=8)) == 8
    assert calculate_duration(start, start + timedelta(minutes=7, seconds=1)) == 8
    assert calculate_duration(start, start + timedelta(seconds=30)) == 1


def test_duration_clamps_clock_skew():
    start = datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)
    assert calculate_duration(start, start) == 0
    assert calculate_duration(start, start - timedelta(minutes=5)) == 0
