"""CLI entry point for the stats enrichment runner."""

from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import replace
from typing import Optional, Sequence

from common.config import get_settings
from common.log_config import configure_logging
from monitor_api.context import build_context
from monitor_api.jobs import EnrichmentConfig

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="pNode stats enrichment runner (per-node stats cache warm-up)")
    p.add_argument("--interval-seconds", type=float, default=None)
    p.add_argument("--batch-size", type=int, default=None)
    p.add_argument("--batch-delay-seconds", type=float, default=None)
    p.add_argument("--once", action="store_true", help="run a single pass and exit")
    return p.parse_args(argv)


def build_config(args: argparse.Namespace, base: EnrichmentConfig) -> EnrichmentConfig:
    overrides = {}
    if args.interval_seconds is not None:
        overrides["interval_seconds"] = args.interval_seconds
    if args.batch_size is not None:
        overrides["batch_size"] = args.batch_size
    if args.batch_delay_seconds is not None:
        overrides["batch_delay_seconds"] = args.batch_delay_seconds
    return replace(base, **overrides)


async def run(args: argparse.Namespace) -> None:
    config = build_config(args, EnrichmentConfig.from_env())
    ctx = build_context(get_settings(), enrichment_config=config)

    await ctx.redis.connect()
    logger.info("Stats enrichment runner started")
    logger.info(
        "Config: interval=%.1fs, batch_size=%d, batch_delay=%.2fs, redis=%s",
        config.interval_seconds, config.batch_size, config.batch_delay_seconds, ctx.redis.state.value,
    )

    try:
        if args.once:
            await ctx.enrichment_job.run_once()
            logger.info("Pasada completada: %s", ctx.enrichment_job.get_stats())
            return
        ctx.enrichment_job.start()
        while ctx.enrichment_job.is_scheduled:
            await asyncio.sleep(config.interval_seconds)
    finally:
        await ctx.shutdown()


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    configure_logging(get_settings().log_level)
    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("Interrumpido, saliendo")


if __name__ == "__main__":
    main()
