"""
Remote cache package.

A lazy-loading, time-expiring key/value cache placed in front of slow or
remote data sources, plus resolver adapters and configuration helpers.
"""

from .__version__ import __version__
from .cache import NEVER, CacheEntry, RemoteCache
from .concurrency import GuardedRemoteCache
from .config.models import CacheOptions, EnvSettings, load_options_file
from .errors import (
    CacheConfigurationError,
    CacheError,
    ResolverError,
    ResolverTimeoutError,
)

__all__ = [
    "__version__",
    "NEVER",
    "CacheEntry",
    "RemoteCache",
    "GuardedRemoteCache",
    "CacheOptions",
    "EnvSettings",
    "load_options_file",
    "CacheError",
    "CacheConfigurationError",
    "ResolverError",
    "ResolverTimeoutError",
]
