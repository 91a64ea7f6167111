"""Search result cache."""

from .service import CacheEntry, SearchCache, build_fingerprint

__all__ = ["CacheEntry", "SearchCache", "build_fingerprint"]
