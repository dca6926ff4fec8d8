"""Tests for filter cache configuration from the environment."""

import pytest

from src.filters.config import (
    FilterConfigError,
    build_filter_cache,
    resolve_cache_ttl,
    resolve_sweep_interval,
    validate_filter_cache_config,
)


def test_defaults():
    assert resolve_cache_ttl() == 300.0
    assert resolve_sweep_interval() == 600.0
    validate_filter_cache_config()


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("FILTER_CACHE_TTL_SECONDS", "30")
    monkeypatch.setenv("FILTER_CACHE_SWEEP_SECONDS", "90")
    cache = build_filter_cache()
    assert cache.ttl_seconds == 30.0
    assert cache.sweep_interval_seconds == 90.0


def test_malformed_value_falls_back(monkeypatch):
    monkeypatch.setenv("FILTER_CACHE_TTL_SECONDS", "five minutes")
    assert resolve_cache_ttl() == 300.0


def test_sweep_must_exceed_ttl(monkeypatch):
    monkeypatch.setenv("FILTER_CACHE_TTL_SECONDS", "600")
    monkeypatch.setenv("FILTER_CACHE_SWEEP_SECONDS", "600")
    with pytest.raises(FilterConfigError, match="must be longer"):
        validate_filter_cache_config()


def test_non_positive_ttl_rejected(monkeypatch):
    monkeypatch.setenv("FILTER_CACHE_TTL_SECONDS", "0")
    with pytest.raises(FilterConfigError, match="positive"):
        validate_filter_cache_config()
