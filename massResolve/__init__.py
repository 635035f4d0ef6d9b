"""massResolve: bulk domain-to-address resolution across a pool of DNS resolvers."""

__version__ = "0.1.0"
