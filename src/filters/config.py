"""Filter cache configuration read from the environment.

FILTER_CACHE_TTL_SECONDS and FILTER_CACHE_SWEEP_SECONDS tune the shared
FilterCache. Malformed values fall back to the defaults; inconsistent
values are rejected at startup by ``validate_filter_cache_config``,
called from the FastAPI lifespan in src/api/main.py.
"""

import logging
import os

from src.filters.cache import (
    DEFAULT_SWEEP_INTERVAL_SECONDS,
    DEFAULT_TTL_SECONDS,
    FilterCache,
)

logger = logging.getLogger(__name__)


class FilterConfigError(Exception):
    """Filter cache configuration is unusable."""


def _read_seconds(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("filter_config_invalid name=%s value=%r using=%s", name, raw, default)
        return default


def resolve_cache_ttl() -> float:
    """TTL after which a cached definition set is treated as absent."""
    return _read_seconds("FILTER_CACHE_TTL_SECONDS", DEFAULT_TTL_SECONDS)


def resolve_sweep_interval() -> float:
    """Spacing between physical evictions of expired entries."""
    return _read_seconds("FILTER_CACHE_SWEEP_SECONDS", DEFAULT_SWEEP_INTERVAL_SECONDS)


def validate_filter_cache_config() -> None:
    """Fail fast when the cache settings are inconsistent.

    Raises:
        FilterConfigError: If either value is non-positive, or the sweep
            interval is not longer than the TTL.
    """
    ttl = resolve_cache_ttl()
    sweep = resolve_sweep_interval()
    if ttl <= 0:
        raise FilterConfigError(f"FILTER_CACHE_TTL_SECONDS must be positive, got {ttl}.")
    if sweep <= 0:
        raise FilterConfigError(
            f"FILTER_CACHE_SWEEP_SECONDS must be positive, got {sweep}."
        )
    if sweep <= ttl:
        raise FilterConfigError(
            f"FILTER_CACHE_SWEEP_SECONDS ({sweep}) must be longer than "
            f"FILTER_CACHE_TTL_SECONDS ({ttl})."
        )


def build_filter_cache() -> FilterCache:
    """Construct the process-wide FilterCache from the environment."""
    return FilterCache(
        ttl_seconds=resolve_cache_ttl(),
        sweep_interval_seconds=resolve_sweep_interval(),
    )
