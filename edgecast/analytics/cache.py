"""Centralized in-memory caching.

Provides:
- ``ttl_cache``: a decorator that memoises function results with a time-to-live.
- ``clear_all_caches()``: flush every registered cache.
- ``cache_stats()``: entry counts per cached function (exposed on /api/health).

Exceptions raised by the wrapped function are never cached, so a failed
upstream fetch is retried on the next call instead of pinning the failure
for a whole TTL.
"""
from __future__ import annotations

import logging
import threading
import time as _time
from functools import wraps
from typing import Any, Callable, Dict, List, Tuple

logger = logging.getLogger(__name__)

# Standard TTLs per upstream source (seconds)
INJURY_TTL = 30 * 60
NBA_STATS_TTL = 60 * 60
SLEEPER_TTL = 60 * 60
TEAM_STATS_TTL = 30 * 60
WEATHER_TTL = 30 * 60
SCOREBOARD_TTL = 2 * 60
ODDS_TTL = 15 * 60
GAME_LOG_TTL = 60 * 60


# ====================================================================
#  Registry of clearable caches
# ====================================================================

_registered_caches: List[Tuple[str, Callable[[], None], Callable[[], int]]] = []


def register_cache(name: str, clear_fn: Callable[[], None], size_fn: Callable[[], int]) -> None:
    _registered_caches.append((name, clear_fn, size_fn))


def clear_all_caches() -> None:
    """Flush every registered cache."""
    for name, clear_fn, _ in _registered_caches:
        clear_fn()
    logger.info("Cleared %d caches", len(_registered_caches))


def cache_stats() -> Dict[str, int]:
    return {name: size_fn() for name, _, size_fn in _registered_caches}


# ====================================================================
#  Generic TTL-cache decorator
# ====================================================================

def ttl_cache(seconds: float = 600.0, maxsize: int = 256):
    """Decorator: cache return values keyed by args for *seconds*.

    Usage::

        @ttl_cache(seconds=300)
        def expensive(team_code: str) -> dict: ...

    - Only hashable positional/keyword args are used as the key.
    - ``func.cache_clear()`` flushes the whole cache.
    - The cache is automatically registered with ``clear_all_caches()``.
    """
    def decorator(func: Callable) -> Callable:
        _store: Dict[tuple, Tuple[float, Any]] = {}
        _lock = threading.Lock()

        @wraps(func)
        def wrapper(*args, **kwargs):
            key = args + tuple(sorted(kwargs.items()))
            now = _time.monotonic()
            with _lock:
                entry = _store.get(key)
                if entry is not None:
                    ts, val = entry
                    if now - ts < seconds:
                        return val
            result = func(*args, **kwargs)
            with _lock:
                if len(_store) >= maxsize and key not in _store:
                    oldest_key = min(_store, key=lambda k: _store[k][0])
                    del _store[oldest_key]
                _store[key] = (now, result)
            return result

        def cache_clear() -> None:
            with _lock:
                _store.clear()

        def cache_size() -> int:
            with _lock:
                return len(_store)

        wrapper.cache_clear = cache_clear  # type: ignore[attr-defined]
        register_cache("%s.%s" % (func.__module__, func.__name__), cache_clear, cache_size)
        return wrapper

    return decorator
