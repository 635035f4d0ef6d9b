"""Configuration for a massResolve run."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from massResolve.errors import ConfigError

PUBLIC_DNS_BASE_URL = "https://public-dns.info/nameserver/"
GEOLOCATION_URL = "https://ipapi.co/json/"


class DnsSettings(BaseModel):
    timeout_seconds: float = Field(default=2.0, gt=0)
    max_attempts: int = Field(default=3, ge=1)
    probe_resolvers: bool = Field(default=True)
    probe_name: str = Field(default="example.com")
    probe_timeout_seconds: float = Field(default=3.0, gt=0)


class DiscoverySettings(BaseModel):
    base_url: str = Field(default=PUBLIC_DNS_BASE_URL)
    geolocation_url: str = Field(default=GEOLOCATION_URL)
    fallback_country: str = Field(default="us", min_length=2, max_length=2)
    min_resolvers: int = Field(default=50, ge=1)
    http_timeout_seconds: float = Field(default=15.0, gt=0)


class ResolveConfig(BaseModel):
    """Settings for one pipeline run, passed explicitly through the driver."""
    input_path: str = Field(default="")
    workers: int = Field(default=5, ge=1)
    resolver_file: Optional[str] = Field(default=None)
    only_addresses: bool = Field(default=False)
    public_dns: bool = Field(default=False)
    show_stats: bool = Field(default=False)
    dns: DnsSettings = Field(default_factory=DnsSettings)
    discovery: DiscoverySettings = Field(default_factory=DiscoverySettings)

    @classmethod
    def load(cls, path: str) -> "ResolveConfig":
        cfg_path = Path(path)
        if not cfg_path.exists():
            raise ConfigError(f"Config file not found: {cfg_path}")
        try:
            raw = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {cfg_path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError(f"Config file {cfg_path} must contain a mapping")
        try:
            return cls(**raw)
        except ValidationError as exc:
            raise ConfigError(f"Invalid config: {exc}") from exc

    def merged(self, overrides: Dict[str, Any]) -> "ResolveConfig":
        """Return a validated copy with non-None overrides applied.

        Nested sections (``dns``, ``discovery``) are merged key by key.
        """
        data = self.model_dump()
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(data.get(key), dict):
                data[key].update({k: v for k, v in value.items() if v is not None})
            elif value is not None:
                data[key] = value
        try:
            return ResolveConfig(**data)
        except ValidationError as exc:
            raise ConfigError(f"Invalid config: {exc}") from exc

    @property
    def resolver_mode(self) -> Literal["public-discovery", "file", "default"]:
        if self.public_dns:
            return "public-discovery"
        if self.resolver_file:
            return "file"
        return "default"

    @property
    def queue_size(self) -> int:
        return self.workers * 2
