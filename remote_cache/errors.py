"""Exception types raised by the cache.

Resolver failures are swallowed by default and only surface as
:class:`ResolverError` when a cache is built with
``raise_on_resolver_error=True``.
"""

from __future__ import annotations

from collections.abc import Hashable
from typing import Optional


class CacheError(Exception):
    """Base class for cache errors."""


class CacheConfigurationError(CacheError, ValueError):
    """Raised when a cache is constructed with missing or invalid options."""


class ResolverError(CacheError):
    """A resolver call failed for ``key``.

    The original exception is available as ``__cause__``.
    """

    def __init__(self, key: Hashable, message: Optional[str] = None) -> None:
        self.key = key
        super().__init__(message or f"Unable to resolve key {key!r}")


class ResolverTimeoutError(ResolverError):
    """A resolver call exceeded the configured deadline."""

    def __init__(self, key: Hashable, timeout_ms: float) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(
            key, f"Resolver for key {key!r} did not complete within {timeout_ms}ms"
        )
