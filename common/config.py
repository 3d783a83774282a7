from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv

# Reference deployment seeds. The first one is the primary gossip endpoint.
DEFAULT_SEED_IPS: Tuple[str, ...] = (
    "173.212.220.65",
    "161.97.97.41",
    "192.190.136.36",
    "192.190.136.38",
    "207.244.255.1",
    "192.190.136.28",
    "192.190.136.29",
    "173.212.203.145",
)


def _default_env_file() -> str:
    return str(Path.cwd() / ".env")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_seed_ips() -> Tuple[str, ...]:
    raw = os.getenv("PRPC_SEED_IPS", "")
    seeds = tuple(ip.strip() for ip in raw.split(",") if ip.strip())
    return seeds or DEFAULT_SEED_IPS


@dataclass(frozen=True)
class Settings:
    redis_url: str = "redis://localhost:6379/0"
    redis_enabled: bool = True
    redis_key_prefix: str = "xandeum:"

    online_threshold_seconds: int = 300

    seed_ips: Tuple[str, ...] = DEFAULT_SEED_IPS
    prpc_port: int = 6000
    prpc_timeout_seconds: float = 10.0
    prpc_seed_timeout_seconds: float = 5.0
    node_stats_timeout_seconds: float = 8.0

    node_cache_ttl_seconds: int = 30
    node_stats_cache_ttl_seconds: int = 120
    raw_pods_cache_ttl_seconds: int = 60
    node_metrics_cache_ttl_seconds: int = 60
    geo_cache_ttl_seconds: int = 24 * 60 * 60

    geo_api_url: str = "http://ip-api.com"
    geo_batch_size: int = 100
    geo_batch_timeout_seconds: float = 10.0
    geo_lookup_timeout_seconds: float = 5.0

    enrichment_enabled: bool = True
    enrichment_interval_seconds: float = 90.0
    enrichment_batch_size: int = 15
    enrichment_batch_delay_seconds: float = 0.1

    debug_calculations: bool = False
    log_level: str = "INFO"

    @property
    def primary_seed(self) -> str:
        return self.seed_ips[0]


def get_settings() -> Settings:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = os.getenv("PNODE_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    return Settings(
        redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        redis_enabled=_env_bool("REDIS_ENABLED", True),
        redis_key_prefix=os.getenv("REDIS_KEY_PREFIX", "xandeum:"),
        online_threshold_seconds=_env_int("ONLINE_THRESHOLD_SECONDS", 300),
        seed_ips=_env_seed_ips(),
        prpc_port=_env_int("PRPC_PORT", 6000),
        prpc_timeout_seconds=_env_float("PRPC_TIMEOUT_SECONDS", 10.0),
        prpc_seed_timeout_seconds=_env_float("PRPC_SEED_TIMEOUT_SECONDS", 5.0),
        node_stats_timeout_seconds=_env_float("NODE_STATS_TIMEOUT_SECONDS", 8.0),
        node_cache_ttl_seconds=_env_int("NODE_CACHE_TTL_SECONDS", 30),
        node_stats_cache_ttl_seconds=_env_int("NODE_STATS_CACHE_TTL_SECONDS", 120),
        raw_pods_cache_ttl_seconds=_env_int("RAW_PODS_CACHE_TTL_SECONDS", 60),
        node_metrics_cache_ttl_seconds=_env_int("NODE_METRICS_CACHE_TTL_SECONDS", 60),
        geo_cache_ttl_seconds=_env_int("GEO_CACHE_TTL_SECONDS", 24 * 60 * 60),
        geo_api_url=os.getenv("GEO_API_URL", "http://ip-api.com"),
        geo_batch_size=_env_int("GEO_BATCH_SIZE", 100),
        geo_batch_timeout_seconds=_env_float("GEO_BATCH_TIMEOUT_SECONDS", 10.0),
        geo_lookup_timeout_seconds=_env_float("GEO_LOOKUP_TIMEOUT_SECONDS", 5.0),
        enrichment_enabled=_env_bool("ENRICHMENT_ENABLED", True),
        enrichment_interval_seconds=_env_float("ENRICHMENT_INTERVAL_SECONDS", 90.0),
        enrichment_batch_size=_env_int("ENRICHMENT_BATCH_SIZE", 15),
        enrichment_batch_delay_seconds=_env_float("ENRICHMENT_BATCH_DELAY_SECONDS", 0.1),
        debug_calculations=_env_bool("DEBUG_CALCULATIONS", False),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
