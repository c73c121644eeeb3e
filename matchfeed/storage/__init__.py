"""Storage layer: the in-memory snapshot cache."""

from .cache_store import CacheStore

__all__ = ['CacheStore']
