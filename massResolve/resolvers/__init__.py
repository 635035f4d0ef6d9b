"""
Resolver endpoints: where they come from and how lookups fail over across them.
"""
from __future__ import annotations

from massResolve.resolvers.models import DNSAnswer, Priority, RecordType, ResolutionMeta, ResolverEndpoint
from massResolve.resolvers.pool import DnsResolverPool, ResolverPool, build_resolver_pool
from massResolve.resolvers.sources import (
    DEFAULT_RESOLVERS,
    DefaultSource,
    FileSource,
    PublicDirectorySource,
    build_source,
)

__all__ = [
    "DEFAULT_RESOLVERS",
    "DNSAnswer",
    "DefaultSource",
    "DnsResolverPool",
    "FileSource",
    "Priority",
    "PublicDirectorySource",
    "RecordType",
    "ResolutionMeta",
    "ResolverEndpoint",
    "ResolverPool",
    "build_resolver_pool",
    "build_source",
]
