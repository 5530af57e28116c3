"""File-backed synchronous content cache.

This module provides the FileContentCache class, a key-value cache that keeps
one file per key in a cache directory. It tags every entry with the commit
fingerprint it was fetched against and serves nothing once that fingerprint
changes or the cache is older than 24 hours.
"""

import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, List, Optional
from urllib.parse import quote, unquote

from src.content_cache.errors import CacheError
from src.content_cache.models import (
    CACHE_PREFIX,
    COMMIT_SHA_KEY,
    PAGES_LIST_KEY,
    RESERVED_KEYS,
    TIMESTAMP_KEY,
    CacheEntry,
    decode_entry,
    is_fingerprint_valid,
    is_valid_list,
    storage_key,
)
from src.models import ReadResult

logger = logging.getLogger(__name__)

ENTRY_SUFFIX = '.entry'


class FileContentCache:
    """Synchronous commit-fingerprint-keyed cache stored as files.

    Each key is one file holding a string value:
    - cms_cache_commit_sha.entry: Commit fingerprint of the cached data
    - cms_cache_timestamp.entry: When the fingerprint was recorded (ms)
    - cms_cache_pages_list.entry: Cached page list entry
    - cms_cache_<key>.entry: Cached document entry ({data, commitSha, timestamp})

    Writes go through a temporary file and an atomic rename, so a reader
    never sees half a value. An optional quota makes writes that would grow
    the directory past quota_bytes fail the way a full browser store does.

    File structure:
        .cms-sync/cache/
          cms_cache_commit_sha.entry
          cms_cache_timestamp.entry
          cms_cache_page_index.entry
          cms_cache_globals.entry

    Example:
        >>> cache = FileContentCache(".cms-sync/cache")
        >>> if cache.is_cache_valid(current_sha):
        ...     page = cache.get_cached_document(page_key("index"))
    """

    def __init__(
        self,
        cache_dir: str,
        clock: Callable[[], float] = time.time,
        quota_bytes: Optional[int] = None,
    ):
        """Initialize the cache.

        Args:
            cache_dir: Cache directory (e.g., .cms-sync/cache)
            clock: Wall-clock time source in seconds
            quota_bytes: Maximum total size of stored values (None for unlimited)

        Raises:
            CacheError: If the cache directory cannot be created
        """
        self.cache_dir = os.path.abspath(cache_dir)
        self.quota_bytes = quota_bytes
        self._clock = clock
        try:
            os.makedirs(self.cache_dir, exist_ok=True)
        except OSError as e:
            raise CacheError(
                cache_path=self.cache_dir,
                message=f"Failed to create cache directory: {e}",
            )

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _path(self, name: str) -> Path:
        return Path(self.cache_dir) / f"{quote(name, safe='-_.')}{ENTRY_SUFFIX}"

    # ------------------------------------------------------------------
    # Raw string storage
    # ------------------------------------------------------------------

    def _get_item(self, name: str) -> Optional[str]:
        """Read a raw value; None if absent. Raises OSError on I/O failure."""
        try:
            return self._path(name).read_text(encoding='utf-8')
        except FileNotFoundError:
            return None

    def _set_item(self, name: str, value: str) -> None:
        """Atomically write a raw value.

        Raises:
            OSError: On I/O failure or when the quota would be exceeded
        """
        path = self._path(name)
        encoded = value.encode('utf-8')
        if self.quota_bytes is not None:
            current = path.stat().st_size if path.exists() else 0
            if self._used_bytes() - current + len(encoded) > self.quota_bytes:
                raise OSError(f"cache quota of {self.quota_bytes} bytes exceeded")

        fd, tmp_path = tempfile.mkstemp(dir=self.cache_dir, suffix='.tmp')
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(encoded)
            os.replace(tmp_path, path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def _remove_item(self, name: str) -> None:
        try:
            self._path(name).unlink()
        except FileNotFoundError:
            pass

    def _names(self) -> List[str]:
        return [
            unquote(p.name[:-len(ENTRY_SUFFIX)])
            for p in Path(self.cache_dir).glob(f"*{ENTRY_SUFFIX}")
        ]

    def _used_bytes(self) -> int:
        return sum(p.stat().st_size for p in Path(self.cache_dir).glob(f"*{ENTRY_SUFFIX}"))

    # ------------------------------------------------------------------
    # Commit fingerprint
    # ------------------------------------------------------------------

    def get_cached_commit_sha(self) -> Optional[str]:
        try:
            return self._get_item(storage_key(COMMIT_SHA_KEY))
        except OSError as e:
            logger.debug(f"Failed to read cached commit sha: {e}")
            return None

    def set_cached_commit_sha(self, sha: str) -> bool:
        """Record the commit fingerprint and the time it was recorded.

        Returns:
            True if stored, False if the write failed (e.g., quota exceeded)
        """
        try:
            self._set_item(storage_key(COMMIT_SHA_KEY), sha)
            self._set_item(storage_key(TIMESTAMP_KEY), str(self._now_ms()))
            return True
        except OSError as e:
            logger.error(f"Failed to set cached commit sha: {e}")
            return False

    def is_cache_valid(self, current_sha: str) -> bool:
        """True iff the stored fingerprint equals current_sha and is under 24h old."""
        try:
            stored_sha = self._get_item(storage_key(COMMIT_SHA_KEY))
            stored_timestamp = self._get_item(storage_key(TIMESTAMP_KEY))
        except OSError:
            return False
        return is_fingerprint_valid(stored_sha, stored_timestamp, current_sha, self._now_ms())

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def read_document(self, key: str) -> ReadResult:
        """Read a cached entry as a tagged result (value is a CacheEntry)."""
        try:
            raw = self._get_item(storage_key(key))
        except OSError as e:
            return ReadResult.failed(str(e))
        return decode_entry(raw)

    def get_cached_document(self, key: str) -> Optional[Any]:
        result = self.read_document(key)
        if not result.is_found:
            if result.error:
                logger.debug(f"Cache miss for {key}: {result.status.value} ({result.error})")
            return None
        return result.value.data

    def set_cached_document(self, key: str, data: Any, sha: str) -> bool:
        entry = CacheEntry(data=data, commit_sha=sha, timestamp_ms=self._now_ms())
        try:
            self._set_item(storage_key(key), entry.to_json())
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to cache {key}: {e}")
            return False

    def remove_cached_document(self, key: str) -> None:
        try:
            self._remove_item(storage_key(key))
        except OSError as e:
            logger.error(f"Failed to remove cached {key}: {e}")

    def list_cached_keys(self) -> List[str]:
        """Keys of cached documents, excluding the page list and bookkeeping."""
        try:
            names = self._names()
        except OSError:
            return []
        keys = [name[len(CACHE_PREFIX):] for name in names if name.startswith(CACHE_PREFIX)]
        return sorted(key for key in keys if key not in RESERVED_KEYS)

    # ------------------------------------------------------------------
    # Page list
    # ------------------------------------------------------------------

    def get_cached_list(self) -> Optional[List[Any]]:
        """Return the cached page list, or None if absent or any element is malformed."""
        result = self.read_document(PAGES_LIST_KEY)
        if not result.is_found or not is_valid_list(result.value.data):
            return None
        return result.value.data

    def set_cached_list(self, items: List[Any], sha: str) -> bool:
        return self.set_cached_document(PAGES_LIST_KEY, items, sha)

    def invalidate_all(self) -> None:
        """Remove every cached document, the page list and the stored fingerprint."""
        deleted_count = 0
        try:
            names = self._names()
        except OSError as e:
            logger.error(f"Failed to invalidate cache: {e}")
            return
        for name in names:
            if not name.startswith(CACHE_PREFIX):
                continue
            try:
                self._remove_item(name)
                deleted_count += 1
            except OSError as e:
                logger.warning(f"Failed to delete cache entry {name}: {e}")
        logger.info(f"Invalidated cache: removed {deleted_count} entries")
