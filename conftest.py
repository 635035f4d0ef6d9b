"""
Pytest configuration and shared fixtures.
"""
import asyncio
import random
from typing import Dict, List, Optional, Sequence, Union

import pytest

from massResolve.config import DnsSettings
from massResolve.errors import ResolutionError
from massResolve.resolvers.models import (
    DNSAnswer,
    Priority,
    RecordType,
    ResolutionMeta,
    ResolverEndpoint,
)

Script = Dict[str, Union[List[str], Exception]]


class ScriptedPool:
    """Resolver pool double answering from a fixed script.

    Names missing from the script fail with ResolutionError. With
    ``jitter`` set, each call sleeps a random fraction of it so completion
    order differs from submission order.
    """

    def __init__(self, script: Script, jitter: float = 0.0, seed: int = 7) -> None:
        self.script = script
        self.jitter = jitter
        self.calls: List[tuple] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._random = random.Random(seed)

    async def resolve(
        self,
        name: str,
        record_type: RecordType = RecordType.A,
        priority: Priority = Priority.HIGH,
    ):
        self.calls.append((name, record_type, priority))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.jitter:
                await asyncio.sleep(self._random.random() * self.jitter)
            else:
                await asyncio.sleep(0)
            outcome = self.script.get(name)
            if outcome is None:
                raise ResolutionError(name, "no resolver answered", attempts=3)
            if isinstance(outcome, Exception):
                raise outcome
            answers = [DNSAnswer(name=name, record_type=record_type, data=d, ttl=300) for d in outcome]
            return answers, ResolutionMeta(endpoint=ResolverEndpoint("192.0.2.53"), attempts=1)
        finally:
            self.in_flight -= 1


class StaticSource:
    mode = "static"

    def __init__(self, resolvers: Sequence[str]) -> None:
        self.resolvers = list(resolvers)
        self.fetched = False

    async def fetch(self) -> List[str]:
        self.fetched = True
        return list(self.resolvers)


def pool_factory_for(pool: Optional[ScriptedPool], seen: Optional[list] = None):
    """Build a pool factory returning ``pool`` and recording the endpoints it got."""

    async def factory(entries: Sequence[str], settings: DnsSettings):
        if seen is not None:
            seen.append(list(entries))
        return pool

    return factory


@pytest.fixture
def scripted_pool():
    return ScriptedPool({
        "example.com": ["93.184.216.34"],
        "multi.example.net": ["203.0.114.10", "203.0.114.11", "203.0.114.10"],
        "internal.example.org": ["10.0.0.5", "127.0.0.1", "93.184.216.34"],
        "empty.example.com": [],
    })


@pytest.fixture
def domains_file(tmp_path):
    path = tmp_path / "domains.txt"
    path.write_text(
        "Example.COM\n"
        "example.com\n"
        "\n"
        "multi.example.net\n"
        "internal.example.org\n"
        "missing.example.com\n"
        "empty.example.com\n",
        encoding="utf-8",
    )
    return path
