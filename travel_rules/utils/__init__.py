"""Shared utilities: TTL cache and pagination."""

from travel_rules.utils.cache import CacheKeys, CacheStats, CacheSweeper, TTLCache
from travel_rules.utils.pagination import (
    PaginationResult,
    format_page_counter,
    paginate,
)

__all__ = [
    "TTLCache",
    "CacheStats",
    "CacheSweeper",
    "CacheKeys",
    "PaginationResult",
    "paginate",
    "format_page_counter",
]
