"""Lazy-loading, time-expiring key/value cache.

:class:`RemoteCache` sits in front of a slow or remote source. Reads return
the cached value while it is fresh and otherwise call the configured
resolver, store its result with an expiry, and return it.

Expiries are absolute epoch milliseconds taken from the cache's clock. An
entry whose expiry is ``None`` never expires. Expired entries stay in the
mapping until a read replaces them or :meth:`RemoteCache.clean` sweeps them;
nothing is evicted on a timer.

Instances assume a single logical thread of control: there is no locking,
and concurrent misses for one key each call the resolver. Use
:class:`remote_cache.concurrency.GuardedRemoteCache` when that matters.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Union

from .adapters import Resolver, call_resolver
from .config.models import CacheOptions, EnvSettings, build_options
from .errors import ResolverError
from .utils.timestamps import ms_to_datetime

logger = logging.getLogger(__name__)

#: TTL override meaning "this entry never expires".
NEVER = None


@dataclass
class CacheEntry:
    """Stored value and its absolute expiry (epoch ms, ``None`` = never)."""

    value: Any
    expiry: Optional[float]

    def is_expired(self, now: float) -> bool:
        """Return True once ``now`` has reached the expiry."""
        return self.expiry is not None and self.expiry <= now

    @property
    def expires_at(self) -> Optional[datetime]:
        """Expiry as an aware UTC datetime, or None when it never expires."""
        return ms_to_datetime(self.expiry)


class RemoteCache:
    """Cache resolving missing or expired keys through a resolver.

    Parameters
    ----------
    options: CacheOptions or Mapping
        Construction options. ``resolver`` is required; ``ttl`` (ms) and
        ``capacity`` default to ``0``.

    Raises
    ------
    CacheConfigurationError
        If ``options`` is missing, has no resolver, or is invalid.
    """

    def __init__(self, options: Union[CacheOptions, Mapping[str, Any], None]) -> None:
        self._options = build_options(options)
        self._entries: Dict[Hashable, CacheEntry] = {}
        self._clock: Callable[[], float] = self._options.clock
        logger.info(
            "remote_cache.init",
            extra={
                "cache": self._options.name,
                "ttl_ms": self._options.ttl,
                "capacity": self._options.capacity,
                "resolver_timeout_ms": self._options.resolver_timeout,
            },
        )

    @classmethod
    def from_settings(
        cls, resolver: Resolver, settings: Optional[EnvSettings] = None
    ) -> "RemoteCache":
        """Build a cache from environment settings (``REMOTE_CACHE_*``)."""
        settings = settings or EnvSettings()
        return cls(settings.to_options(resolver))

    @property
    def options(self) -> CacheOptions:
        return self._options

    @property
    def resolver(self) -> Resolver:
        return self._options.resolver

    @property
    def ttl(self) -> float:
        """Default TTL in milliseconds (``0`` = no default expiry)."""
        return self._options.ttl

    @property
    def capacity(self) -> int:
        """Declared capacity. Advisory only; never enforced."""
        return self._options.capacity

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self._options.name!r}, "
            f"size={self.size()}, ttl={self.ttl}, capacity={self.capacity})"
        )

    def _fresh_entry(self, key: Hashable) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None or entry.is_expired(self._clock()):
            return None
        return entry

    async def get(self, key: Hashable) -> Any:
        """Return the value for ``key``, resolving it if missing or expired.

        Returns ``None`` if the resolver returned ``None`` or failed.
        """
        entry = self._fresh_entry(key)
        if entry is not None:
            logger.debug("remote_cache.hit", extra={"key": key})
            return entry.value

        logger.debug("remote_cache.miss", extra={"key": key})
        return await self.reload(key)

    def set(self, key: Hashable, value: Any, ttl: Optional[float] = 0) -> bool:
        """Store ``value`` under ``key``.

        Parameters
        ----------
        key: Hashable
            Cache key.
        value: Any
            Value to store; ``None`` is stored like any other value.
        ttl: float or None
            ``0`` uses the default TTL, :data:`NEVER` (``None``) never
            expires, and any other number expires ``ttl`` ms from now.

        Returns
        -------
        bool
            True if an existing entry was overwritten, False if not.
        """
        overwritten = key in self._entries

        now = self._clock()
        if ttl is NEVER:
            expiry = None
        elif ttl == 0:
            expiry = None if self.ttl == 0 else now + self.ttl
        else:
            expiry = now + ttl

        self._entries[key] = CacheEntry(value=value, expiry=expiry)
        logger.debug(
            "remote_cache.set",
            extra={"key": key, "expiry": expiry, "overwritten": overwritten},
        )
        if not overwritten and 0 < self.capacity < len(self._entries):
            logger.debug(
                "remote_cache.capacity.exceeded",
                extra={
                    "cache": self._options.name,
                    "size": len(self._entries),
                    "capacity": self.capacity,
                },
            )
        return overwritten

    async def reload(self, key: Hashable) -> Any:
        """Resolve ``key`` with the resolver and store the result.

        The resolver is called even when a fresh entry exists. On failure the
        entry is removed and ``None`` is returned, or ``ResolverError`` is
        raised when ``raise_on_resolver_error`` is set.
        """
        try:
            value = await call_resolver(
                self.resolver, key, self._options.resolver_timeout
            )
        except Exception as exc:
            self.invalidate(key)
            logger.warning(
                "remote_cache.reload.failed",
                extra={
                    "cache": self._options.name,
                    "key": key,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            if not self._options.raise_on_resolver_error:
                return None
            if isinstance(exc, ResolverError):
                raise
            raise ResolverError(key) from exc

        self.set(key, value)
        return value

    async def reload_all(self, keys: Optional[Iterable[Hashable]] = None) -> int:
        """Reload ``keys`` one after another.

        Parameters
        ----------
        keys: Iterable or None
            Keys to reload; ``None`` reloads every key currently cached.

        Returns
        -------
        int
            Number of keys processed, whether or not they resolved.
        """
        if keys is None:
            pending = list(self._entries)
        else:
            pending = list(keys)
        for key in pending:
            await self.reload(key)
        logger.debug(
            "remote_cache.reload_all",
            extra={"cache": self._options.name, "count": len(pending)},
        )
        return len(pending)

    def invalidate(self, key: Hashable) -> bool:
        """Remove ``key``. Returns True if it was present."""
        if key not in self._entries:
            return False
        del self._entries[key]
        logger.debug("remote_cache.invalidate", extra={"key": key})
        return True

    def reset(self) -> int:
        """Remove every entry and return how many there were."""
        count = len(self._entries)
        self._entries = {}
        logger.debug(
            "remote_cache.reset", extra={"cache": self._options.name, "count": count}
        )
        return count

    def size(self) -> int:
        """Number of stored entries, including expired ones not yet cleaned."""
        return len(self._entries)

    def clean(self) -> int:
        """Remove expired entries and return how many were removed."""
        now = self._clock()
        expired = [
            key for key, entry in self._entries.items() if entry.is_expired(now)
        ]
        for key in expired:
            del self._entries[key]
        logger.debug(
            "remote_cache.clean",
            extra={"cache": self._options.name, "removed": len(expired)},
        )
        return len(expired)
