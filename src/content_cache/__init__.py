"""Commit-fingerprint-keyed content cache with file and SQLite backends."""

from src.content_cache.base import AsyncContentCache, ContentCache
from src.content_cache.errors import CacheError
from src.content_cache.file_cache import FileContentCache
from src.content_cache.models import (
    CACHE_MAX_AGE_MS,
    GLOBALS_KEY,
    CacheEntry,
    page_key,
)
from src.content_cache.sqlite_cache import SqliteContentCache

__all__ = [
    'AsyncContentCache',
    'ContentCache',
    'CacheError',
    'FileContentCache',
    'SqliteContentCache',
    'CACHE_MAX_AGE_MS',
    'GLOBALS_KEY',
    'CacheEntry',
    'page_key',
]
