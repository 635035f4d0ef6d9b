"""
Exception hierarchy for massResolve.

Fatal errors (ConfigError, PoolConstructionError) are raised before any
resolution work starts and abort the run. ResolutionError and
DiscoveryFetchError are absorbed by the layer that raised them.
"""


class MassResolveError(Exception):
    """Base exception for massResolve errors."""
    pass


class ConfigError(MassResolveError):
    """Missing or unreadable input, resolver file or config file."""
    pass


class PoolConstructionError(MassResolveError):
    """Resolver pool could not be built from the endpoint list."""
    pass


class ResolutionError(MassResolveError):
    """Lookup of a single name failed on every attempted resolver."""

    def __init__(self, name: str, message: str, attempts: int = 0):
        super().__init__(f"{name}: {message}")
        self.name = name
        self.attempts = attempts


class DiscoveryFetchError(MassResolveError):
    """Public resolver list could not be fetched or was too short."""

    def __init__(self, url: str, message: str):
        super().__init__(f"{url}: {message}")
        self.url = url
