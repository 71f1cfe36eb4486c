"""Config models and loader.

This module defines the Pydantic model holding a cache's construction-time
options, the environment-driven settings that can populate it, and a JSON
file loader. JSON parsing prefers `orjson` when available and falls back to
the Python standard library's `json` module otherwise.
"""

from __future__ import annotations

import json as _json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Callable, Optional

try:
    import orjson as _orjson_mod  # type: ignore[assignment]
except ImportError:  # pragma: no cover - optional dependency
    _orjson_mod = None  # type: ignore[assignment]
    _loads_orjson: Optional[Callable[[bytes], Any]] = None
else:

    def _loads_orjson(buf: bytes) -> Any:
        loader = getattr(_orjson_mod, "loads")  # type: ignore[assignment]
        return loader(buf)


from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..errors import CacheConfigurationError
from ..utils.timestamps import now_ms


class CacheOptions(BaseModel):
    """Construction-time options for a cache. Immutable once built.

    Attributes
    ----------
    resolver: Callable
        Function resolving a key to a value. May be a coroutine function or
        a plain callable; may raise.
    ttl: float
        Default entry lifespan in milliseconds. ``0`` means entries stored
        without an explicit TTL never expire.
    capacity: int
        Declared maximum entry count. Advisory only; nothing is evicted when
        it is exceeded.
    resolver_timeout: float
        Deadline in milliseconds for a single resolver call. ``0`` disables
        the deadline.
    raise_on_resolver_error: bool
        When False (default) resolver failures evict the entry and read as
        ``None``. When True they evict the entry and raise ``ResolverError``.
    clock: Callable[[], float]
        Returns the current time in epoch milliseconds.
    name: str
        Label attached to log records.
    """

    model_config = ConfigDict(
        frozen=True, extra="forbid", arbitrary_types_allowed=True
    )

    resolver: Callable[..., Any] = Field(..., description="Key resolver function")
    ttl: float = Field(0, ge=0, description="Default TTL in milliseconds")
    capacity: int = Field(0, ge=0, description="Advisory maximum entry count")
    resolver_timeout: float = Field(
        0, ge=0, description="Resolver deadline in milliseconds (0 = none)"
    )
    raise_on_resolver_error: bool = Field(
        False, description="Surface resolver failures as ResolverError"
    )
    clock: Callable[[], float] = Field(
        default=now_ms, description="Current time in epoch milliseconds"
    )
    name: str = Field("remote-cache", description="Label for log records")


def build_options(data: Any) -> CacheOptions:
    """Validate ``data`` into :class:`CacheOptions`.

    Accepts an existing ``CacheOptions`` (returned as-is) or a mapping of its
    fields. ``None`` values for ``ttl`` and ``capacity`` are normalized to
    their ``0`` defaults.

    Raises
    ------
    CacheConfigurationError
        If ``data`` is missing, lacks a resolver, or fails validation.
    """
    if data is None:
        raise CacheConfigurationError("Creating a cache requires a resolver")
    if isinstance(data, CacheOptions):
        return data
    if not isinstance(data, Mapping):
        raise CacheConfigurationError(
            "Cache options must be a mapping or CacheOptions, "
            f"got {type(data).__name__}"
        )
    if data.get("resolver") is None:
        raise CacheConfigurationError("Creating a cache requires a resolver")

    fields = dict(data)
    for numeric in ("ttl", "capacity", "resolver_timeout"):
        if numeric in fields and fields[numeric] is None:
            fields[numeric] = 0
    try:
        return CacheOptions.model_validate(fields)
    except ValidationError as exc:
        raise CacheConfigurationError(f"Invalid cache options: {exc}") from exc


class EnvSettings(BaseSettings):
    """Environment-driven settings and .env support.

    Attributes
    ----------
    log_level: str
        Logging level name (e.g., "DEBUG", "INFO"). Defaults to "INFO".
    ttl: float
        Default TTL in milliseconds. Defaults to 0 (no expiry).
    capacity: int
        Advisory capacity. Defaults to 0 (unbounded).
    resolver_timeout: float
        Resolver deadline in milliseconds. Defaults to 0 (none).
    raise_on_resolver_error: bool
        Surface resolver failures instead of returning None.
    name: str
        Label for log records.
    """

    model_config = SettingsConfigDict(env_file=".env", env_prefix="REMOTE_CACHE_")

    log_level: str = Field("INFO")
    ttl: float = Field(0, ge=0)
    capacity: int = Field(0, ge=0)
    resolver_timeout: float = Field(0, ge=0)
    raise_on_resolver_error: bool = Field(False)
    name: str = Field("remote-cache")

    def to_options(self, resolver: Callable[..., Any]) -> CacheOptions:
        """Build cache options from these settings and ``resolver``."""
        return build_options(
            {
                "resolver": resolver,
                "ttl": self.ttl,
                "capacity": self.capacity,
                "resolver_timeout": self.resolver_timeout,
                "raise_on_resolver_error": self.raise_on_resolver_error,
                "name": self.name,
            }
        )


def load_options_file(
    path: Path, resolver: Callable[..., Any], **overrides: Any
) -> CacheOptions:
    """Load cache options from a JSON file.

    The file holds a JSON object with any of ``ttl``, ``capacity``,
    ``resolver_timeout``, ``raise_on_resolver_error`` and ``name``. The
    resolver is always supplied by the caller. Keyword ``overrides`` win
    over file values.
    """
    raw = Path(path).read_bytes()
    try:
        if _loads_orjson is not None:
            data = _loads_orjson(raw)
        else:
            data = _json.loads(raw.decode("utf-8"))
    except ValueError as exc:
        raise CacheConfigurationError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise CacheConfigurationError(f"{path} must contain a JSON object")
    return build_options({**data, **overrides, "resolver": resolver})
