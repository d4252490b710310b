"""Runtime span discovery and caching."""

from chainlens.discovery.cache import CacheResult, TtlCache
from chainlens.discovery.spans import (
    SpanWalker,
    WalkOptions,
    walk_runtime_spans,
    get_cached_runtime_spans,
)

__all__ = [
    "CacheResult",
    "TtlCache",
    "SpanWalker",
    "WalkOptions",
    "walk_runtime_spans",
    "get_cached_runtime_spans",
]
