"""Configuración y modelos del job de enriquecimiento."""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Optional

from common.config import Settings


class JobState(str, Enum):
    """Estados del job. Solo IDLE → RUNNING se dispara desde fuera."""
    IDLE = "idle"
    RUNNING = "running"


@dataclass
class EnrichmentConfig:
    """Configuración del job de enriquecimiento."""
    interval_seconds: float = 90.0
    batch_size: int = 15
    batch_delay_seconds: float = 0.1
    # Upper bound per node on top of the client's own timeout.
    fetch_timeout_seconds: float = 10.0

    @classmethod
    def from_env(cls) -> "EnrichmentConfig":
        return cls(
            interval_seconds=float(os.getenv("ENRICHMENT_INTERVAL_SECONDS", "90")),
            batch_size=int(os.getenv("ENRICHMENT_BATCH_SIZE", "15")),
            batch_delay_seconds=float(os.getenv("ENRICHMENT_BATCH_DELAY_SECONDS", "0.1")),
            fetch_timeout_seconds=float(os.getenv("ENRICHMENT_FETCH_TIMEOUT_SECONDS", "10")),
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "EnrichmentConfig":
        return cls(
            interval_seconds=settings.enrichment_interval_seconds,
            batch_size=settings.enrichment_batch_size,
            batch_delay_seconds=settings.enrichment_batch_delay_seconds,
            fetch_timeout_seconds=settings.node_stats_timeout_seconds + 2.0,
        )


@dataclass
class EnrichmentRunStats:
    """Estadísticas acumuladas y de la última corrida."""
    runs: int = 0
    skipped_runs: int = 0
    failed_runs: int = 0
    last_run_at: Optional[float] = None
    last_duration_seconds: float = 0.0
    last_online_nodes: int = 0
    last_fetched: int = 0
    last_cached: int = 0
    last_failed: int = 0

    def to_dict(self) -> dict:
        return asdict(self)
