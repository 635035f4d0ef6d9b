"""Result aggregation: filter to global unicast, format, deduplicate."""
from __future__ import annotations

import asyncio
import ipaddress
from typing import Dict, Iterable, List, Optional

from massResolve.logging_config import get_logger
from massResolve.resolvers.models import DNSAnswer

logger = get_logger("aggregator")


def parse_global_unicast(data: str) -> Optional[str]:
    """Return the canonical address if ``data`` is a globally routable unicast IP.

    Private, loopback, link-local, multicast, unspecified, reserved and
    shared (100.64.0.0/10) addresses are rejected, as is anything that is
    not an IP address at all.
    """
    try:
        addr = ipaddress.ip_address(data.strip())
    except ValueError:
        return None
    if not addr.is_global or addr.is_multicast:
        return None
    return str(addr)


def is_global_unicast(data: str) -> bool:
    return parse_global_unicast(data) is not None


def format_line(answer: DNSAnswer, address: str, only_addresses: bool) -> str:
    if only_addresses:
        return address
    return f"{answer.name},{address}"


class ResultAggregator:
    """Streaming, order-preserving set of result lines.

    Workers fold answers in as they arrive; a line is kept the first time
    it is seen. Appends are serialized by an asyncio lock.
    """

    def __init__(self, only_addresses: bool = False) -> None:
        self.only_addresses = only_addresses
        self._lines: Dict[str, None] = {}
        self._lock = asyncio.Lock()
        self.answers = 0
        self.rejected = 0

    def _fold(self, answers: Iterable[DNSAnswer]) -> None:
        for answer in answers:
            self.answers += 1
            address = parse_global_unicast(answer.data)
            if address is None:
                self.rejected += 1
                logger.debug(
                    f"Rejected non-global answer {answer.data} for {answer.name}",
                    extra={"domain": answer.name}
                )
                continue
            self._lines.setdefault(format_line(answer, address, self.only_addresses), None)

    def add_nowait(self, answers: Iterable[DNSAnswer]) -> None:
        """Fold a batch in without taking the lock (single-task callers only)."""
        self._fold(answers)

    async def add(self, answers: Iterable[DNSAnswer]) -> None:
        """Fold one job's answers in as a single contiguous batch."""
        async with self._lock:
            self._fold(answers)

    def lines(self) -> List[str]:
        return list(self._lines)

    def __len__(self) -> int:
        return len(self._lines)


def aggregate(answers: Iterable[DNSAnswer], only_addresses: bool = False) -> List[str]:
    """Filter, format and deduplicate a complete answer set in one pass."""
    aggregator = ResultAggregator(only_addresses=only_addresses)
    aggregator.add_nowait(answers)
    return aggregator.lines()
