"""Resolver interfaces and invocation helper."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Hashable
from typing import Any, Awaitable, Protocol, Union

from ..errors import ResolverTimeoutError

logger = logging.getLogger(__name__)


class Resolver(Protocol):
    """Protocol for resolvers.

    A resolver maps a cache key to a value, usually by asking a slower or
    remote source. Returning ``None`` means "not found" and is cached like
    any other value; raising means the key could not be resolved.
    """

    def __call__(self, key: Hashable) -> Union[Awaitable[Any], Any]:
        """Resolve ``key`` to a value."""
        raise NotImplementedError


async def call_resolver(
    resolver: Resolver, key: Hashable, timeout_ms: float = 0
) -> Any:
    """Invoke ``resolver`` for ``key`` once and return its value.

    Plain callables are accepted as well as coroutine functions; an awaitable
    result is awaited. When ``timeout_ms`` is positive the awaited part is
    bounded by that deadline.

    Raises
    ------
    ResolverTimeoutError
        If the resolver does not complete within ``timeout_ms``.
    Exception
        Anything the resolver itself raises.
    """
    result = resolver(key)
    if not inspect.isawaitable(result):
        return result
    if timeout_ms <= 0:
        return await result
    try:
        return await asyncio.wait_for(result, timeout=timeout_ms / 1000.0)
    except asyncio.TimeoutError as exc:
        logger.debug(
            "remote_cache.resolver.timeout",
            extra={"key": key, "timeout_ms": timeout_ms},
        )
        raise ResolverTimeoutError(key, timeout_ms) from exc


__all__ = ["Resolver", "call_resolver"]
