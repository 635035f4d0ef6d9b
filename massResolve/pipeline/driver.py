"""Pipeline driver: resolver list -> pool -> workers -> aggregator."""
from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from typing import Awaitable, Callable, IO, List, Optional, Sequence

from massResolve.config import DnsSettings, ResolveConfig
from massResolve.errors import ConfigError, PoolConstructionError
from massResolve.logging_config import get_logger, reset_run_id, set_run_id
from massResolve.pipeline.aggregator import ResultAggregator
from massResolve.pipeline.workers import RunStats, WorkerPool
from massResolve.resolvers.pool import ResolverPool, build_resolver_pool
from massResolve.resolvers.sources import ResolverListSource, build_source

logger = get_logger("pipeline")

PoolFactory = Callable[[Sequence[str], DnsSettings], Awaitable[Optional[ResolverPool]]]


@dataclass
class PipelineResult:
    lines: List[str] = field(default_factory=list)
    stats: RunStats = field(default_factory=RunStats)


def validate_config(cfg: ResolveConfig) -> None:
    if not cfg.input_path or not cfg.input_path.strip():
        raise ConfigError("An input file with domains is required")


def open_input(path: str) -> IO[str]:
    try:
        return open(path, "r", encoding="utf-8", errors="replace")
    except OSError as exc:
        raise ConfigError(f"Cannot read input file {path}: {exc}") from exc


async def load_resolvers(cfg: ResolveConfig, source: Optional[ResolverListSource] = None) -> List[str]:
    source = source or build_source(cfg)
    try:
        resolvers = await source.fetch()
    finally:
        close_fn = getattr(source, "close", None)
        if close_fn is not None:
            await close_fn()
    logger.info(
        "Resolver list ready",
        extra={"mode": source.mode, "entries": len(resolvers)}
    )
    return resolvers


async def feed_jobs(workers: WorkerPool, fh: IO[str]) -> None:
    """Stream domains from the input into the job queue, lowercased."""
    for line in fh:
        domain = line.strip().lower()
        if not domain:
            continue
        await workers.submit(domain)


async def run_pipeline(
    cfg: ResolveConfig,
    pool_factory: PoolFactory = build_resolver_pool,
    source: Optional[ResolverListSource] = None,
) -> PipelineResult:
    """Resolve every domain in ``cfg.input_path`` and return the result lines.

    Raises ConfigError or PoolConstructionError before any lookup is made;
    individual lookup failures are counted in the stats and otherwise ignored.
    """
    validate_config(cfg)
    token = set_run_id(uuid.uuid4().hex[:12])
    start_time = time.time()
    try:
        fh = open_input(cfg.input_path)
        with fh:
            resolvers = await load_resolvers(cfg, source)
            pool = await pool_factory(resolvers, cfg.dns)
            if pool is None:
                raise PoolConstructionError(
                    f"Failed to init resolver pool from {len(resolvers)} endpoints"
                )

            stats = RunStats()
            aggregator = ResultAggregator(only_addresses=cfg.only_addresses)
            workers = WorkerPool(pool, aggregator, workers=cfg.workers, stats=stats)

            logger.info(
                "Starting resolution",
                extra={"workers": cfg.workers, "queue_size": cfg.queue_size, "state": "starting"}
            )
            workers.start()
            try:
                await feed_jobs(workers, fh)
                await workers.close()
                await workers.join()
            except asyncio.CancelledError:
                await workers.cancel()
                logger.info("Resolution interrupted", extra={"state": "interrupted"})
                raise
            except Exception:
                await workers.cancel()
                raise

        stats.answers = aggregator.answers
        stats.rejected = aggregator.rejected
        stats.lines = len(aggregator)
        stats.duration_ms = round((time.time() - start_time) * 1000, 2)
        logger.info("Resolution completed", extra={**stats.as_dict(), "outcome": "success"})
        return PipelineResult(lines=aggregator.lines(), stats=stats)
    finally:
        reset_run_id(token)
