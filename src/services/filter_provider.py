"""Centralized filter compiler provider: owner of process-global singletons.

API routes and services import the shared FilterCache and
FilterQueryCompiler from HERE. A second cache instance would miss
invalidations issued through the first, so never construct
FilterCache or FilterQueryCompiler for request handling elsewhere.
"""

import logging
import threading

from src.db.connection import AsyncSessionLocal
from src.filters.cache import FilterCache
from src.filters.compiler import FilterQueryCompiler
from src.filters.config import build_filter_cache
from src.filters.store import SqlFilterDefinitionStore

logger = logging.getLogger(__name__)

_filter_cache: FilterCache | None = None
_filter_compiler: FilterQueryCompiler | None = None
_lock = threading.Lock()


def get_filter_cache() -> FilterCache:
    """Get or create the process-global FilterCache.

    Returns:
        The shared FilterCache instance, configured from the environment.
    """
    global _filter_cache
    if _filter_cache is not None:
        return _filter_cache
    with _lock:
        if _filter_cache is None:
            _filter_cache = build_filter_cache()
            logger.info(
                "FilterCache singleton initialized ttl=%ss sweep=%ss",
                _filter_cache.ttl_seconds,
                _filter_cache.sweep_interval_seconds,
            )
    return _filter_cache


def get_filter_compiler() -> FilterQueryCompiler:
    """Get or create the process-global FilterQueryCompiler.

    The compiler reads definitions through its own sessions so a read
    never joins the caller's transaction.

    Returns:
        The shared FilterQueryCompiler instance.
    """
    global _filter_compiler
    if _filter_compiler is not None:
        return _filter_compiler
    cache = get_filter_cache()
    with _lock:
        if _filter_compiler is None:
            _filter_compiler = FilterQueryCompiler(
                store=SqlFilterDefinitionStore(AsyncSessionLocal),
                cache=cache,
            )
            logger.info("FilterQueryCompiler singleton initialized")
    return _filter_compiler


def reset_filter_singletons() -> None:
    """Drop the shared instances so the next access rebuilds them."""
    global _filter_cache, _filter_compiler
    with _lock:
        _filter_cache = None
        _filter_compiler = None
