# tests/worker/test_distribution.py
import pytest

from virtkube.worker.distribution import (
    distribute_over_zones,
    distribute_positive_int_or_percent,
    resolve_int_or_percent,
)


@pytest.mark.parametrize(
    "total, zone_count, expected",
    [
        (3, 2, [2, 1]),
        (6, 2, [3, 3]),
        (5, 3, [2, 2, 1]),
        (1, 3, [1, 0, 0]),
        (0, 2, [0, 0]),
        (-4, 2, [0, 0]),
    ],
)
def test_distribute_over_zones(total, zone_count, expected):
    shares = [distribute_over_zones(i, total, zone_count) for i in range(zone_count)]
    assert shares == expected


def test_distribute_over_zones_sums_to_total():
    for total in range(0, 20):
        for zone_count in range(1, 6):
            shares = [distribute_over_zones(i, total, zone_count) for i in range(zone_count)]
            assert sum(shares) == total
            # Earlier zones never get less than later ones
            assert shares == sorted(shares, reverse=True)


def test_distribute_over_zones_rejects_bad_zone_count():
    with pytest.raises(ValueError):
        distribute_over_zones(0, 3, 0)


def test_distribute_over_zones_rejects_out_of_range_index():
    with pytest.raises(ValueError):
        distribute_over_zones(2, 3, 2)


@pytest.mark.parametrize(
    "value, reference, round_up, expected",
    [
        (2, 10, True, 2),
        (-1, 10, True, 0),
        ("3", 10, True, 3),
        ("50%", 6, True, 3),
        ("25%", 3, True, 1),
        ("25%", 3, False, 0),
        ("100%", 4, False, 4),
        ("0%", 4, True, 0),
    ],
)
def test_resolve_int_or_percent(value, reference, round_up, expected):
    assert resolve_int_or_percent(value, reference, round_up) == expected


@pytest.mark.parametrize("value", ["abc", "%", "x%", "-5%"])
def test_resolve_int_or_percent_invalid(value):
    with pytest.raises(ValueError):
        resolve_int_or_percent(value, 10, True)


def test_percentage_is_resolved_once_before_distribution():
    # 50% of a maximum of 6 is 3, spread over two zones
    surges = [distribute_positive_int_or_percent(i, "50%", 2, 6, round_up=True) for i in range(2)]
    assert surges == [2, 1]


def test_max_unavailable_rounds_down():
    values = [distribute_positive_int_or_percent(i, "30%", 2, 5, round_up=False) for i in range(2)]
    assert values == [1, 0]
