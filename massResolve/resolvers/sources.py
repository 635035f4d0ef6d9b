"""Resolver list sources (built-in defaults, file, public-dns.info)."""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Iterable, List, Optional, Protocol

import aiohttp

from massResolve.config import DiscoverySettings, ResolveConfig
from massResolve.errors import ConfigError, DiscoveryFetchError
from massResolve.logging_config import get_logger

logger = get_logger("resolvers")
discovery_logger = get_logger("discovery")

DEFAULT_RESOLVERS = [
    "1.1.1.1:53",      # Cloudflare
    "8.8.8.8:53",      # Google
    "64.6.64.6:53",    # Verisign
    "77.88.8.8:53",    # Yandex.DNS
    "74.82.42.42:53",  # Hurricane Electric
    "1.0.0.1:53",      # Cloudflare Secondary
    "8.8.4.4:53",      # Google Secondary
    "77.88.8.1:53",    # Yandex.DNS Secondary
]


def deduplicate(items: Iterable[str]) -> List[str]:
    """Remove exact duplicates, keeping the first occurrence of each item."""
    seen = set()
    unique: List[str] = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        unique.append(item)
    return unique


def parse_wordlist(text: str) -> List[str]:
    """Split newline-delimited text into trimmed, non-blank, unique entries."""
    return deduplicate(w for w in (line.strip() for line in text.splitlines()) if w)


class ResolverListSource(Protocol):
    mode: str

    async def fetch(self) -> List[str]:
        ...


class DefaultSource:
    """Hand-curated public resolvers spanning several operators."""

    mode = "default"

    async def fetch(self) -> List[str]:
        return list(DEFAULT_RESOLVERS)


class FileSource:
    """Read one resolver endpoint per line from a local file."""

    mode = "file"

    def __init__(self, path: str) -> None:
        self.path = Path(path)

    async def fetch(self) -> List[str]:
        try:
            text = self.path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise ConfigError(f"Cannot read resolver file {self.path}: {exc}") from exc
        resolvers = parse_wordlist(text)
        logger.info(
            "Loaded resolvers from file",
            extra={"mode": self.mode, "entries": len(resolvers), "url": str(self.path)}
        )
        return resolvers


class PublicDirectorySource:
    """Fetch nameservers from public-dns.info for the caller's country.

    The country is taken from a geolocation lookup of the client address.
    A list is accepted only with at least ``min_resolvers`` unique entries;
    otherwise the fallback country list is tried, then the built-in defaults.
    """

    mode = "public-discovery"

    def __init__(self, cfg: DiscoverySettings) -> None:
        self.cfg = cfg
        self.session: Optional[aiohttp.ClientSession] = None

    async def _client(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            timeout = aiohttp.ClientTimeout(total=self.cfg.http_timeout_seconds)
            self.session = aiohttp.ClientSession(timeout=timeout)
        return self.session

    def list_url(self, country: str) -> str:
        return f"{self.cfg.base_url.rstrip('/')}/{country}.txt"

    async def _get_text(self, url: str) -> str:
        client = await self._client()
        try:
            async with client.get(url) as resp:
                if resp.status != 200:
                    raise DiscoveryFetchError(url, f"HTTP {resp.status}")
                return await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise DiscoveryFetchError(url, f"{type(exc).__name__}: {exc}") from exc

    async def country_code(self) -> str:
        """Return the client's lowercase country code, or the fallback country."""
        client = await self._client()
        try:
            async with client.get(self.cfg.geolocation_url) as resp:
                if resp.status == 200:
                    data = await resp.json(content_type=None)
                    if isinstance(data, dict):
                        code = str(data.get("country_code") or data.get("country") or "").strip().lower()
                        if len(code) == 2 and code.isalpha():
                            return code
                discovery_logger.debug(f"Geolocation lookup returned HTTP {resp.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            discovery_logger.debug(f"Geolocation lookup failed: {exc}")
        return self.cfg.fallback_country

    async def fetch_country_list(self, country: str) -> List[str]:
        url = self.list_url(country)
        resolvers = parse_wordlist(await self._get_text(url))
        if len(resolvers) < self.cfg.min_resolvers:
            raise DiscoveryFetchError(
                url, f"only {len(resolvers)} resolvers, need {self.cfg.min_resolvers}"
            )
        return resolvers

    async def fetch(self) -> List[str]:
        country = await self.country_code()
        candidates = [country]
        if country != self.cfg.fallback_country:
            candidates.append(self.cfg.fallback_country)

        for cc in candidates:
            try:
                resolvers = await self.fetch_country_list(cc)
            except DiscoveryFetchError as exc:
                discovery_logger.warning(
                    f"Public resolver list rejected: {exc}",
                    extra={"country": cc, "url": exc.url, "outcome": "error"}
                )
                continue
            discovery_logger.info(
                "Public resolver list fetched",
                extra={"country": cc, "entries": len(resolvers), "outcome": "success"}
            )
            return resolvers

        discovery_logger.warning(
            "Public resolver discovery failed; using built-in resolvers",
            extra={"mode": "default", "entries": len(DEFAULT_RESOLVERS)}
        )
        return list(DEFAULT_RESOLVERS)

    async def close(self) -> None:
        if self.session:
            await self.session.close()
            self.session = None


def build_source(cfg: ResolveConfig) -> ResolverListSource:
    mode = cfg.resolver_mode
    if mode == "public-discovery":
        return PublicDirectorySource(cfg.discovery)
    if mode == "file":
        return FileSource(cfg.resolver_file)
    return DefaultSource()
