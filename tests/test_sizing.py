from __future__ import annotations

import pytest

from pi5_installer.lib.sizing import DEFAULT_POLICY, ReservationPolicy, compute_data_partition


@pytest.mark.parametrize(
    "total_mb,last_end_mb",
    [
        (32000, 30000),
        (8000, 7500),
    ],
)
def test_skips_when_too_little_space(total_mb, last_end_mb):
    assert compute_data_partition(total_mb, last_end_mb) is None


def test_large_disk_gets_partition_up_to_reserve():
    plan = compute_data_partition(128000, 8000)
    assert plan is not None
    assert plan.reserved_mb == 25600
    assert plan.available_mb == 94400
    assert (plan.start_mb, plan.end_mb) == (8000, 102400)
    assert plan.size_mb == 94400


def test_reserve_has_a_floor():
    assert DEFAULT_POLICY.reserved_mb(10000) == 4096
    assert DEFAULT_POLICY.reserved_mb(100000) == 20000


def test_minimum_available_is_exclusive():
    # D=100000 reserves 20000; 1024MB left is still a skip, 1025MB is not.
    assert compute_data_partition(100000, 78976) is None
    plan = compute_data_partition(100000, 78975)
    assert plan is not None
    assert plan.available_mb == 1025


def test_reserve_percentage_truncates():
    # 20% of 51234 is 10246.8
    assert DEFAULT_POLICY.reserved_mb(51234) == 10246


def test_custom_policy():
    policy = ReservationPolicy(percent=10, floor_mb=1000, min_available_mb=0)
    plan = compute_data_partition(20000, 10000, policy)
    assert plan is not None
    assert plan.reserved_mb == 2000
    assert plan.end_mb == 18000
