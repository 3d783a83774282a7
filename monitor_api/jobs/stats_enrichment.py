"""Job de pre-carga de estadísticas por nodo.

Keeps the per-node stats cache warm so request handlers only ever read
RAM figures from cache. Runs every 90s by default, in batches of 15
online nodes with a short pause between batches to bound load on the
network.

The re-entrancy guard is a per-process flag: two processes running this
job are not prevented from overlapping.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import contextmanager
from typing import Iterator, List, Optional

from prometheus_client import Counter

from ..core.cache import FallbackCache
from ..schemas import Node
from ..services.discovery import DiscoveryService
from ..services.enrichment import node_stats_key
from ..services.node_stats import NodeStatsService
from .models import EnrichmentConfig, EnrichmentRunStats, JobState

logger = logging.getLogger(__name__)

ENRICHMENT_RUNS = Counter(
    "pnode_enrichment_runs_total",
    "Stats enrichment runs",
    ["result"],  # completed, skipped, failed
)
ENRICHMENT_NODE_FETCHES = Counter(
    "pnode_enrichment_node_fetches_total",
    "Per-node stats fetches issued by the enrichment job",
    ["result"],  # fetched, cached, failed
)

RESULT_FETCHED = "fetched"
RESULT_CACHED = "cached"
RESULT_FAILED = "failed"


class StatsEnrichmentJob:
    """Pre-fetch periódico de NodeStats.

    Uso:
        job = StatsEnrichmentJob(discovery, node_stats, stats_cache)
        job.start()          # corre una vez ya y luego cada interval_seconds
        ...
        await job.stop()
    """

    def __init__(
        self,
        discovery: DiscoveryService,
        node_stats: NodeStatsService,
        stats_cache: FallbackCache,
        config: Optional[EnrichmentConfig] = None,
    ):
        self._discovery = discovery
        self._node_stats = node_stats
        self._cache = stats_cache
        self._config = config or EnrichmentConfig.from_env()

        self._state = JobState.IDLE
        self._task: Optional[asyncio.Task] = None
        self._stats = EnrichmentRunStats()

        logger.info(
            "[ENRICH] Job initialized: interval=%.1fs batch_size=%d batch_delay=%.2fs",
            self._config.interval_seconds,
            self._config.batch_size,
            self._config.batch_delay_seconds,
        )

    @property
    def state(self) -> JobState:
        return self._state

    @property
    def is_scheduled(self) -> bool:
        return self._task is not None and not self._task.done()

    @contextmanager
    def _running(self) -> Iterator[None]:
        self._state = JobState.RUNNING
        try:
            yield
        finally:
            self._state = JobState.IDLE

    async def run_once(self) -> bool:
        """Run one enrichment pass.

        Returns False without doing anything when a pass is already in
        flight. Never raises: failures are counted and logged.
        """
        if self._state == JobState.RUNNING:
            self._stats.skipped_runs += 1
            ENRICHMENT_RUNS.labels("skipped").inc()
            logger.info("[ENRICH] Pre-fetch already running, skipping")
            return False

        with self._running():
            started = time.monotonic()
            self._stats.runs += 1
            self._stats.last_run_at = time.time()
            try:
                await self._run()
                ENRICHMENT_RUNS.labels("completed").inc()
            except Exception as e:
                self._stats.failed_runs += 1
                ENRICHMENT_RUNS.labels("failed").inc()
                logger.exception("[ENRICH] Pre-fetch failed: %s", e)
            finally:
                self._stats.last_duration_seconds = round(time.monotonic() - started, 3)
        return True

    async def _run(self) -> None:
        started = time.monotonic()
        nodes = await self._discovery.get_all_nodes()
        online = [n for n in nodes if n.is_online]
        self._stats.last_online_nodes = len(online)
        self._stats.last_fetched = self._stats.last_cached = self._stats.last_failed = 0

        logger.info("[ENRICH] Pre-fetching stats for %d online nodes", len(online))
        if not online:
            return

        size = max(1, self._config.batch_size)
        for start in range(0, len(online), size):
            await self._process_batch(online[start:start + size])
            if start + size < len(online):
                await asyncio.sleep(self._config.batch_delay_seconds)

        warm = self._stats.last_fetched + self._stats.last_cached
        logger.info(
            "[ENRICH] Pre-fetch complete in %.1fs: fetched=%d cached=%d failed=%d warm=%d/%d (%.1f%%)",
            time.monotonic() - started,
            self._stats.last_fetched,
            self._stats.last_cached,
            self._stats.last_failed,
            warm,
            len(online),
            warm / len(online) * 100,
        )

    async def _process_batch(self, batch: List[Node]) -> None:
        results = await asyncio.gather(
            *(self._warm_node(node) for node in batch),
            return_exceptions=True,
        )
        for node, result in zip(batch, results):
            if isinstance(result, BaseException):
                logger.debug("[ENRICH] Fetch failed pubkey=%s: %s", node.pubkey, result)
                result = RESULT_FAILED
            if result == RESULT_FETCHED:
                self._stats.last_fetched += 1
            elif result == RESULT_CACHED:
                self._stats.last_cached += 1
            else:
                self._stats.last_failed += 1
            ENRICHMENT_NODE_FETCHES.labels(result).inc()

    async def _warm_node(self, node: Node) -> str:
        if await self._cache.get(node_stats_key(node.pubkey)) is not None:
            return RESULT_CACHED
        stats = await asyncio.wait_for(
            self._node_stats.fetch_node_stats(node),
            timeout=self._config.fetch_timeout_seconds,
        )
        return RESULT_FETCHED if stats is not None else RESULT_FAILED

    def start(self) -> None:
        """Schedule periodic runs, the first one immediately."""
        if self.is_scheduled:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop())
        logger.info("[ENRICH] Job started (runs every %.0fs)", self._config.interval_seconds)

    async def stop(self) -> None:
        """Cancel the schedule and any run in flight."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("[ENRICH] Job stopped")

    async def _loop(self) -> None:
        while True:
            started = time.monotonic()
            await self.run_once()
            elapsed = time.monotonic() - started
            await asyncio.sleep(max(0.0, self._config.interval_seconds - elapsed))

    def get_stats(self) -> dict:
        return {
            "state": self._state.value,
            "scheduled": self.is_scheduled,
            **self._stats.to_dict(),
            "config": {
                "interval_seconds": self._config.interval_seconds,
                "batch_size": self._config.batch_size,
                "batch_delay_seconds": self._config.batch_delay_seconds,
            },
        }
