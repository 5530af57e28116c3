"""Exceptions for the content cache.

Reads and writes through the cache contract never raise: absence,
corruption and write failures all degrade to a miss or a False return.
The only exception is failing to open the backing store at all.
"""

from src.hosting_client.errors import SyncError


class CacheError(SyncError):
    """Raised when the cache store cannot be opened or created."""

    def __init__(self, cache_path: str, message: str):
        super().__init__(f"Cache error at {cache_path}: {message}")
        self.cache_path = cache_path
        self.message = message
