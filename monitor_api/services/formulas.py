"""Deterministic metric formulas shared by analytics and map views.

All rounding is half-up to two decimals (one for choropleth averages) so
the figures match the ones published by the network's own dashboard.
"""

from __future__ import annotations

import math
from typing import Iterable, List, Tuple

from ..schemas import NetworkHealth, NodeTier

SECONDS_IN_24H = 24 * 60 * 60
SECONDS_IN_30D = 30 * SECONDS_IN_24H

UPTIME_WEIGHT = 0.5
STORAGE_WEIGHT = 0.3
ONLINE_WEIGHT = 0.2

EXCELLENT_THRESHOLD = 90.0
GOOD_THRESHOLD = 75.0

HEALTHY_ONLINE_PERCENT = 95.0
DEGRADED_ONLINE_PERCENT = 85.0

HIGH_PRESSURE_UTILIZATION = 80.0


def round_half_up(value: float, decimals: int = 2) -> float:
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return min(high, max(low, value))


def percentage(part: float, whole: float) -> float:
    """``part / whole`` as a 2-decimal percentage, 0 when ``whole`` is 0."""
    if whole <= 0:
        return 0.0
    return round_half_up(part / whole * 100)


def calculate_utilization(storage_used: float, storage_total: float) -> float:
    return percentage(storage_used, storage_total)


def calculate_uptime_24h(uptime_seconds: float) -> float:
    if uptime_seconds < 0:
        return 0.0
    return clamp(uptime_seconds / SECONDS_IN_24H * 100)


def calculate_health_score(uptime_24h: float, storage_utilization: float, is_online: bool) -> float:
    uptime_score = clamp(uptime_24h) * UPTIME_WEIGHT
    storage_score = (100 - clamp(storage_utilization)) * STORAGE_WEIGHT
    online_score = (100 if is_online else 0) * ONLINE_WEIGHT
    return round_half_up(clamp(uptime_score + storage_score + online_score))


def get_node_tier(health_score: float) -> NodeTier:
    if health_score >= EXCELLENT_THRESHOLD:
        return NodeTier.EXCELLENT
    if health_score >= GOOD_THRESHOLD:
        return NodeTier.GOOD
    return NodeTier.POOR


def calculate_network_health(online_percentage: float) -> NetworkHealth:
    if online_percentage >= HEALTHY_ONLINE_PERCENT:
        return NetworkHealth.HEALTHY
    if online_percentage >= DEGRADED_ONLINE_PERCENT:
        return NetworkHealth.DEGRADED
    return NetworkHealth.UNSTABLE


def count_versions(versions: Iterable[str]) -> List[Tuple[str, int]]:
    """(version, count) pairs in first-seen order."""
    counts: dict = {}
    for version in versions:
        key = version or "unknown"
        counts[key] = counts.get(key, 0) + 1
    return list(counts.items())


def consensus_version(versions: Iterable[str]) -> str:
    """Most frequent version; ties go to the first one seen."""
    best, best_count = "unknown", 0
    for version, count in count_versions(versions):
        if count > best_count:
            best, best_count = version, count
    return best


def mean(values: List[float], decimals: int = 2) -> float:
    if not values:
        return 0.0
    return round_half_up(sum(values) / len(values), decimals)
