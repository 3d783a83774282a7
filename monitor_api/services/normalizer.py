"""Normalización de registros de gossip (Pod) al modelo canónico Node."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Optional

from ..schemas import Node, NodeStatus, Pod
from .formulas import SECONDS_IN_30D, round_half_up

DEFAULT_ONLINE_THRESHOLD_SECONDS = 300

# Anything past this is a millisecond epoch (year 5138 in seconds).
MILLISECOND_EPOCH_FLOOR = 100_000_000_000

EPOCH_ISO = "1970-01-01T00:00:00.000Z"


def to_unix_seconds(timestamp: Optional[float]) -> int:
    """Gossip timestamps in seconds; millisecond epochs are scaled down."""
    if not timestamp or timestamp < 0:
        return 0
    if timestamp >= MILLISECOND_EPOCH_FLOOR:
        return int(timestamp // 1000)
    return int(timestamp)


def is_online(last_seen_timestamp: Optional[int], now: int, threshold_seconds: int) -> bool:
    if not last_seen_timestamp:
        return False
    return now - last_seen_timestamp <= threshold_seconds


def resolve_storage_total(pod: Pod) -> int:
    """Capacity in bytes: committed, else back-computed from usage %, else 0."""
    if pod.storage_committed and pod.storage_committed > 0:
        return int(pod.storage_committed)
    pct = pod.storage_usage_percent
    if pod.storage_used and pct and 0 < pct <= 100:
        return int(round_half_up(pod.storage_used * 100 / pct, 0))
    return 0


def normalize_uptime(raw_uptime: Optional[float]) -> float:
    """Uptime as a 0-100 figure.

    Values above 100 are seconds, rescaled against a 30-day window.
    Values in [0, 100] pass through as if already a percentage, which
    misreads nodes with less than 101 seconds of real uptime.
    """
    value = float(raw_uptime or 0)
    if value > 100:
        return min(100.0, value / SECONDS_IN_30D * 100)
    if value < 0:
        return 0.0
    return value


def iso_timestamp(unix_seconds: int) -> str:
    try:
        moment = datetime.fromtimestamp(to_unix_seconds(unix_seconds), tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return EPOCH_ISO
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_pod(
    pod: Pod,
    now: Optional[float] = None,
    online_threshold_seconds: int = DEFAULT_ONLINE_THRESHOLD_SECONDS,
) -> Node:
    """Map a raw gossip record to a Node.

    Pure apart from reading the clock when ``now`` is not given. A record
    without a pubkey comes back with ``pubkey == ""`` so callers can drop it.
    """
    current = int(now if now is not None else time.time())
    last_seen_ts = to_unix_seconds(pod.last_seen_timestamp)
    online = is_online(last_seen_ts, current, online_threshold_seconds)

    return Node(
        pubkey=pod.pubkey or "",
        status=NodeStatus.ONLINE if online else NodeStatus.OFFLINE,
        version=pod.version or "unknown",
        storage_used=int(pod.storage_used or 0),
        storage_total=resolve_storage_total(pod),
        uptime=normalize_uptime(pod.uptime),
        ip=pod.address or "",
        last_seen=iso_timestamp(last_seen_ts),
        address=pod.address,
        is_public=pod.is_public,
        rpc_port=pod.rpc_port,
        storage_committed=pod.storage_committed,
        storage_usage_percent=pod.storage_usage_percent,
        last_seen_timestamp=pod.last_seen_timestamp,
    )
