"""Concurrent resolution pipeline: worker pool, aggregator and driver."""
from __future__ import annotations

from massResolve.pipeline.aggregator import ResultAggregator, aggregate, is_global_unicast
from massResolve.pipeline.driver import PipelineResult, run_pipeline
from massResolve.pipeline.workers import RunStats, WorkerPool

__all__ = [
    "PipelineResult",
    "ResultAggregator",
    "RunStats",
    "WorkerPool",
    "aggregate",
    "is_global_unicast",
    "run_pipeline",
]
