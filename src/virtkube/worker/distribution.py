# src/virtkube/worker/distribution.py
"""
Spreads pool-wide scaling bounds over a pool's zones.

All functions are pure: a zone's share depends only on its index, the zone
count and the total, so shares can be computed in any order. Earlier zones
absorb the remainder, and the shares of zones 0..N-1 always sum to the total.
"""

import math
from typing import Union

IntOrPercent = Union[int, str]


def distribute_over_zones(zone_index: int, total: int, zone_count: int) -> int:
    """Returns the share of `total` assigned to `zone_index` out of `zone_count` zones."""
    if zone_count <= 0:
        raise ValueError("zone_count must be at least 1")
    if not 0 <= zone_index < zone_count:
        raise ValueError(f"zone_index {zone_index} out of range for {zone_count} zones")
    if total <= 0:
        return 0
    share = total // zone_count
    if zone_index < total % zone_count:
        share += 1
    return share


def resolve_int_or_percent(value: IntOrPercent, reference: int, round_up: bool) -> int:
    """
    Resolves an absolute count or a percentage string (e.g. '50%') against
    `reference`. Percentages are rounded up or down as requested, the way
    Kubernetes scales maxSurge (up) and maxUnavailable (down).
    """
    if isinstance(value, int):
        return max(value, 0)

    text = str(value).strip()
    if not text.endswith("%"):
        try:
            return max(int(text), 0)
        except ValueError:
            raise ValueError(f"invalid value {value!r}: must be an integer or a percentage") from None

    try:
        percent = int(text[:-1])
    except ValueError:
        raise ValueError(f"invalid percentage {value!r}") from None
    if percent < 0:
        raise ValueError(f"invalid percentage {value!r}: must not be negative")

    scaled = reference * percent / 100
    resolved = math.ceil(scaled) if round_up else math.floor(scaled)
    return max(resolved, 0)


def distribute_positive_int_or_percent(
    zone_index: int,
    value: IntOrPercent,
    zone_count: int,
    reference: int,
    round_up: bool = True,
) -> int:
    """Resolves `value` once against `reference`, then distributes it over the zones."""
    total = resolve_int_or_percent(value, reference, round_up)
    return distribute_over_zones(zone_index, total, zone_count)
