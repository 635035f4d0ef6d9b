"""Data models shared by the resolver pool and the pipeline."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class RecordType(str, Enum):
    """Record types the pool can be asked for."""
    A = "A"
    AAAA = "AAAA"


class Priority(Enum):
    """Resolution mode requested by the caller."""
    HIGH = "high"  # fastest responding resolver, quick failover
    LOW = "low"    # longer timeouts, every endpoint may be tried


class DNSAnswer(BaseModel):
    """One answer record returned for a queried name."""
    name: str
    record_type: RecordType = RecordType.A
    data: str
    ttl: int = 0

    model_config = ConfigDict(frozen=True)


@dataclass(frozen=True)
class ResolverEndpoint:
    """A DNS server address."""
    host: str
    port: int = 53

    def __str__(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


@dataclass
class ResolutionMeta:
    """How a successful lookup was obtained."""
    endpoint: Optional[ResolverEndpoint] = None
    attempts: int = 0
