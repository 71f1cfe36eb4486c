"""Cache variant safe for concurrent callers.

:class:`GuardedRemoteCache` keeps the :class:`RemoteCache` API and semantics
and adds two things:

- A re-entrant lock around every access to the entry mapping, so the
  synchronous operations may also be called from other threads (for example
  a sweep thread calling ``clean``). The lock is never held across an
  ``await``.
- Single-flight resolution: while a key is being resolved, further ``get``
  and ``reload`` calls for that key wait for the same resolver call instead
  of starting their own.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from collections.abc import Hashable
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from .cache import CacheEntry, RemoteCache
from .config.models import CacheOptions

logger = logging.getLogger(__name__)


class GuardedRemoteCache(RemoteCache):
    """RemoteCache with a guarded mapping and per-key single-flight.

    The first caller for a key runs the resolver in a task on its own event
    loop and publishes the outcome through a thread-safe future. Later
    callers, on the same loop or on loops in other threads, wait on that
    future. Waiters are shielded, so cancelling one of them leaves the
    shared resolution running for the others.
    """

    def __init__(self, options: Union[CacheOptions, Mapping[str, Any], None]) -> None:
        super().__init__(options)
        self._lock = threading.RLock()
        self._inflight: Dict[Hashable, concurrent.futures.Future] = {}

    def in_flight(self) -> int:
        """Number of resolutions currently running."""
        with self._lock:
            return len(self._inflight)

    def _fresh_entry(self, key: Hashable) -> Optional[CacheEntry]:
        with self._lock:
            return super()._fresh_entry(key)

    async def reload(self, key: Hashable) -> Any:
        with self._lock:
            shared = self._inflight.get(key)
            owner = shared is None
            if owner:
                shared = concurrent.futures.Future()
                self._inflight[key] = shared

        if not owner:
            logger.debug("remote_cache.reload.joined", extra={"key": key})
            joined = asyncio.wrap_future(shared)
            joined.add_done_callback(_consume_exception)
            return await asyncio.shield(joined)

        task = asyncio.ensure_future(self._resolve_shared(key, shared))
        task.add_done_callback(_consume_exception)
        return await asyncio.shield(task)

    async def _resolve_shared(
        self, key: Hashable, shared: concurrent.futures.Future
    ) -> Any:
        try:
            value = await super().reload(key)
        except asyncio.CancelledError:
            self._forget(key, shared)
            shared.cancel()
            raise
        except Exception as exc:
            self._forget(key, shared)
            shared.set_exception(exc)
            raise
        self._forget(key, shared)
        shared.set_result(value)
        return value

    def _forget(self, key: Hashable, shared: concurrent.futures.Future) -> None:
        with self._lock:
            if self._inflight.get(key) is shared:
                del self._inflight[key]

    async def reload_all(self, keys: Optional[Iterable[Hashable]] = None) -> int:
        if keys is None:
            with self._lock:
                keys = list(self._entries)
        return await super().reload_all(keys)

    def set(self, key: Hashable, value: Any, ttl: Optional[float] = 0) -> bool:
        with self._lock:
            return super().set(key, value, ttl)

    def invalidate(self, key: Hashable) -> bool:
        with self._lock:
            return super().invalidate(key)

    def reset(self) -> int:
        with self._lock:
            return super().reset()

    def size(self) -> int:
        with self._lock:
            return super().size()

    def clean(self) -> int:
        with self._lock:
            return super().clean()

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return super().__contains__(key)


def _consume_exception(future: "asyncio.Future[Any]") -> None:
    # Every waiter may have been cancelled before the shared resolution failed.
    if not future.cancelled():
        future.exception()
