"""Tests for cache options, environment settings and the JSON loader."""

from __future__ import annotations

import json

import pydantic
import pytest

from remote_cache import (
    CacheConfigurationError,
    CacheOptions,
    EnvSettings,
    RemoteCache,
    load_options_file,
)
from remote_cache.config.models import build_options


async def _resolve(key):
    return key


def test_options_are_frozen():
    options = CacheOptions(resolver=_resolve)
    with pytest.raises(pydantic.ValidationError):
        options.ttl = 10  # type: ignore[misc]


def test_options_reject_unknown_fields():
    with pytest.raises(CacheConfigurationError):
        build_options({"resolver": _resolve, "ttl_seconds": 5})


def test_build_options_rejects_non_mapping():
    with pytest.raises(CacheConfigurationError, match="must be a mapping"):
        build_options(["resolver"])


def test_build_options_normalizes_none_numbers():
    options = build_options(
        {"resolver": _resolve, "ttl": None, "capacity": None, "resolver_timeout": None}
    )
    assert (options.ttl, options.capacity, options.resolver_timeout) == (0, 0, 0)


def test_env_settings_from_environment(monkeypatch):
    monkeypatch.setenv("REMOTE_CACHE_TTL", "1500")
    monkeypatch.setenv("REMOTE_CACHE_CAPACITY", "64")
    monkeypatch.setenv("REMOTE_CACHE_RESOLVER_TIMEOUT", "250")
    monkeypatch.setenv("REMOTE_CACHE_RAISE_ON_RESOLVER_ERROR", "true")
    monkeypatch.setenv("REMOTE_CACHE_NAME", "profiles")

    settings = EnvSettings()
    options = settings.to_options(_resolve)

    assert options.ttl == 1500
    assert options.capacity == 64
    assert options.resolver_timeout == 250
    assert options.raise_on_resolver_error is True
    assert options.name == "profiles"


def test_from_settings_builds_cache(monkeypatch):
    monkeypatch.setenv("REMOTE_CACHE_TTL", "42")
    cache = RemoteCache.from_settings(_resolve)
    assert cache.ttl == 42
    assert cache.resolver is _resolve


def test_from_settings_uses_explicit_settings():
    settings = EnvSettings(ttl=7, capacity=3)
    cache = RemoteCache.from_settings(_resolve, settings)
    assert (cache.ttl, cache.capacity) == (7, 3)


def test_load_options_file(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text(json.dumps({"ttl": 60000, "capacity": 100, "name": "geo"}))

    options = load_options_file(path, _resolve)

    assert options.ttl == 60000
    assert options.capacity == 100
    assert options.name == "geo"
    assert options.resolver is _resolve


def test_load_options_file_overrides_win(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text(json.dumps({"ttl": 60000}))

    options = load_options_file(path, _resolve, ttl=5)
    assert options.ttl == 5


def test_load_options_file_rejects_invalid_json(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text("{not json")

    with pytest.raises(CacheConfigurationError, match="Invalid JSON"):
        load_options_file(path, _resolve)


def test_load_options_file_requires_object(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text("[1, 2]")

    with pytest.raises(CacheConfigurationError, match="JSON object"):
        load_options_file(path, _resolve)
