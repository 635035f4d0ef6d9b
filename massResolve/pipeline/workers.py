"""Bounded asyncio worker pool draining domain jobs into the aggregator."""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import List, Optional

from massResolve.errors import ResolutionError
from massResolve.logging_config import get_logger
from massResolve.pipeline.aggregator import ResultAggregator
from massResolve.resolvers.models import Priority, RecordType
from massResolve.resolvers.pool import ResolverPool

logger = get_logger("workers")


@dataclass
class RunStats:
    jobs: int = 0
    resolved: int = 0
    failed: int = 0
    answers: int = 0
    rejected: int = 0
    lines: int = 0
    duration_ms: float = 0.0

    def as_dict(self) -> dict:
        return {
            "jobs": self.jobs,
            "resolved": self.resolved,
            "failed": self.failed,
            "answers": self.answers,
            "rejected": self.rejected,
            "lines": self.lines,
            "duration": self.duration_ms,
        }


class WorkerPool:
    """N workers sharing one bounded job queue.

    The queue holds at most ``2 * workers`` jobs, so ``submit`` blocks the
    producer until a worker frees a slot. ``close`` enqueues one stop
    sentinel per worker and ``join`` waits for every worker to exit.
    """

    def __init__(
        self,
        pool: ResolverPool,
        aggregator: ResultAggregator,
        workers: int = 5,
        stats: Optional[RunStats] = None,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self.pool = pool
        self.aggregator = aggregator
        self.workers = workers
        self.stats = stats or RunStats()
        self.queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue(maxsize=workers * 2)
        self._tasks: List[asyncio.Task] = []
        self._closed = False

    def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._worker(i), name=f"resolve-worker-{i}")
            for i in range(self.workers)
        ]
        logger.debug(
            "Worker pool started",
            extra={"workers": self.workers, "queue_size": self.queue.maxsize}
        )

    async def submit(self, domain: str) -> None:
        if self._closed:
            raise RuntimeError("worker pool is closed")
        await self.queue.put(domain)
        self.stats.jobs += 1

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for _ in self._tasks:
            await self.queue.put(None)

    async def join(self) -> None:
        await asyncio.gather(*self._tasks)

    async def cancel(self) -> None:
        """Stop all workers early and wait for them to exit; pending jobs are abandoned."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _worker(self, index: int) -> None:
        wlog = get_logger("workers", context={"worker": index})
        while True:
            domain = await self.queue.get()
            try:
                if domain is None:
                    return
                await self._handle(domain, wlog)
            finally:
                self.queue.task_done()

    async def _handle(self, domain: str, wlog) -> None:
        start_time = time.time()
        try:
            answers, meta = await self.pool.resolve(domain, RecordType.A, Priority.HIGH)
        except ResolutionError as exc:
            self.stats.failed += 1
            wlog.debug(
                f"Resolution failed: {exc}",
                extra={"domain": domain, "attempts": exc.attempts, "outcome": "error"}
            )
            return
        except Exception as exc:
            self.stats.failed += 1
            wlog.warning(
                f"Unexpected resolver error for {domain}: {exc}",
                extra={"domain": domain, "outcome": "error", "error_type": type(exc).__name__}
            )
            return

        self.stats.resolved += 1
        if answers:
            await self.aggregator.add(answers)
        wlog.debug(
            f"Resolved {domain}",
            extra={
                "domain": domain,
                "answers": len(answers),
                "endpoint": str(meta.endpoint) if meta.endpoint else None,
                "attempts": meta.attempts,
                "duration": round((time.time() - start_time) * 1000, 2),
                "outcome": "success",
            }
        )
