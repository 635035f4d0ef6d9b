"""Resolver pool: failover across many DNS servers on top of dnspython."""
from __future__ import annotations

import asyncio
import ipaddress
import time
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

import dns.asyncresolver
import dns.exception
import dns.resolver

from massResolve.config import DnsSettings
from massResolve.errors import ResolutionError
from massResolve.logging_config import get_logger
from massResolve.resolvers.models import (
    DNSAnswer,
    Priority,
    RecordType,
    ResolutionMeta,
    ResolverEndpoint,
)
from massResolve.resolvers.sources import deduplicate

logger = get_logger("pool")

# Definitive answers from a working server; another server will not do better.
_DEFINITIVE = (dns.resolver.NXDOMAIN, dns.resolver.YXDOMAIN, dns.resolver.NoAnswer)

PROBE_CONCURRENCY = 50


class ResolverPool(Protocol):
    """What the pipeline needs from a resolver pool."""

    async def resolve(
        self,
        name: str,
        record_type: RecordType = RecordType.A,
        priority: Priority = Priority.HIGH,
    ) -> Tuple[List[DNSAnswer], ResolutionMeta]:
        ...


def parse_endpoint(entry: str) -> Optional[ResolverEndpoint]:
    """Parse ``ip``, ``ip:port`` or ``[ipv6]:port``; None if malformed."""
    text = entry.strip()
    if not text:
        return None
    host, port_text = text, "53"
    if text.startswith("["):
        host, _, rest = text[1:].partition("]")
        if rest.startswith(":"):
            port_text = rest[1:]
        elif rest:
            return None
    elif text.count(":") == 1:
        host, port_text = text.split(":")
    try:
        addr = ipaddress.ip_address(host)
        port = int(port_text)
    except ValueError:
        return None
    if not 0 < port < 65536:
        return None
    return ResolverEndpoint(host=str(addr), port=port)


def parse_endpoints(entries: Iterable[str]) -> List[ResolverEndpoint]:
    endpoints: List[ResolverEndpoint] = []
    for entry in deduplicate(e.strip() for e in entries):
        endpoint = parse_endpoint(entry)
        if endpoint is None:
            if entry:
                logger.warning(f"Skipping malformed resolver entry: {entry!r}")
            continue
        if endpoint not in endpoints:
            endpoints.append(endpoint)
    return endpoints


def _make_resolver(endpoint: ResolverEndpoint, timeout: float) -> dns.asyncresolver.Resolver:
    resolver = dns.asyncresolver.Resolver(configure=False)
    # port first: the nameservers setter binds the current port
    resolver.port = endpoint.port
    resolver.nameservers = [endpoint.host]
    resolver.timeout = timeout
    resolver.lifetime = timeout
    resolver.cache = None
    return resolver


class DnsResolverPool:
    """Round-robin pool of single-server resolvers with per-call failover.

    Each call starts at the next endpoint in rotation. Transport failures
    (timeouts, SERVFAIL/REFUSED, socket errors) move on to the following
    endpoint; NXDOMAIN and empty answers are returned as no answers.
    Safe to share between any number of asyncio tasks.
    """

    def __init__(self, endpoints: Sequence[ResolverEndpoint], settings: DnsSettings) -> None:
        if not endpoints:
            raise ValueError("resolver pool needs at least one endpoint")
        self.endpoints = list(endpoints)
        self.settings = settings
        self._resolvers = {
            ep: _make_resolver(ep, settings.timeout_seconds) for ep in self.endpoints
        }
        self._next = 0

    def __len__(self) -> int:
        return len(self.endpoints)

    def _rotation(self, attempts: int) -> List[ResolverEndpoint]:
        start = self._next
        self._next = (self._next + 1) % len(self.endpoints)
        return [self.endpoints[(start + i) % len(self.endpoints)] for i in range(attempts)]

    def _plan(self, priority: Priority) -> Tuple[int, float]:
        if priority is Priority.LOW:
            return len(self.endpoints), self.settings.timeout_seconds * 2
        return min(self.settings.max_attempts, len(self.endpoints)), self.settings.timeout_seconds

    async def resolve(
        self,
        name: str,
        record_type: RecordType = RecordType.A,
        priority: Priority = Priority.HIGH,
    ) -> Tuple[List[DNSAnswer], ResolutionMeta]:
        attempts, timeout = self._plan(priority)
        last_error = "no attempt made"
        meta = ResolutionMeta()

        for endpoint in self._rotation(attempts):
            meta.attempts += 1
            meta.endpoint = endpoint
            resolver = self._resolvers[endpoint]
            try:
                answer = await resolver.resolve(
                    name,
                    record_type.value,
                    raise_on_no_answer=False,
                    lifetime=timeout,
                    search=False,
                )
            except _DEFINITIVE:
                return [], meta
            except (dns.exception.DNSException, OSError) as exc:
                last_error = f"{type(exc).__name__} from {endpoint}"
                logger.debug(
                    f"Lookup attempt failed for {name}: {last_error}",
                    extra={"domain": name, "endpoint": str(endpoint), "attempts": meta.attempts}
                )
                continue

            if answer.rrset is None:
                return [], meta
            ttl = answer.rrset.ttl
            return [
                DNSAnswer(name=name, record_type=record_type, data=rdata.to_text(), ttl=ttl)
                for rdata in answer.rrset
            ], meta

        raise ResolutionError(name, last_error, attempts=meta.attempts)

    async def probe(self, endpoint: ResolverEndpoint) -> bool:
        """Return True if the endpoint gives any DNS response to the probe name."""
        resolver = _make_resolver(endpoint, self.settings.probe_timeout_seconds)
        try:
            await resolver.resolve(
                self.settings.probe_name, "A", raise_on_no_answer=False, search=False
            )
        except _DEFINITIVE:
            return True
        except (dns.exception.DNSException, OSError):
            return False
        return True


async def build_resolver_pool(
    entries: Sequence[str],
    settings: DnsSettings,
) -> Optional[DnsResolverPool]:
    """Build a pool from raw endpoint strings.

    Returns None when no entry parses or, with probing enabled, when no
    endpoint answers the probe query. Unreachable endpoints are dropped.
    """
    endpoints = parse_endpoints(entries)
    if not endpoints:
        logger.error("No usable resolver endpoints", extra={"entries": len(entries)})
        return None

    pool = DnsResolverPool(endpoints, settings)
    if not settings.probe_resolvers:
        return pool

    start_time = time.time()
    sem = asyncio.Semaphore(PROBE_CONCURRENCY)

    async def _probe_one(endpoint: ResolverEndpoint) -> bool:
        async with sem:
            return await pool.probe(endpoint)

    results = await asyncio.gather(*(_probe_one(ep) for ep in endpoints))
    reachable = [ep for ep, ok in zip(endpoints, results) if ok]
    logger.info(
        "Resolver probe completed",
        extra={
            "entries": len(endpoints),
            "resolved": len(reachable),
            "duration": round((time.time() - start_time) * 1000, 2),
        }
    )
    if not reachable:
        return None
    if len(reachable) < len(endpoints):
        pool = DnsResolverPool(reachable, settings)
    return pool
