"""Cache-first page loading.

This module provides the PageLoader class: documents are served from the
content cache while the cached commit fingerprint matches the remote one,
and are otherwise loaded through the StorageAdapter and written back to the
cache tagged with the current fingerprint.
"""

import logging
from typing import Any, Callable, List, Optional

from src.content_cache import GLOBALS_KEY, ContentCache, page_key
from src.hosting_client.models import CancellationToken
from src.models import PageInfo
from src.storage import SaveResult, StorageAdapter
from src.storage.paths import validate_page_id

logger = logging.getLogger(__name__)


class PageLoader:
    """Loads pages, globals and the page list through the content cache.

    A stale cache (different fingerprint or older than 24 hours) is
    invalidated as a whole before the first reload, so entries fetched
    against different remote states are never mixed.

    Example:
        >>> loader = PageLoader(adapter, FileContentCache(".cms-sync/cache"),
        ...                     client.get_latest_commit_sha)
        >>> page = loader.load_page("index")
    """

    def __init__(
        self,
        adapter: StorageAdapter,
        cache: ContentCache,
        fingerprint: Optional[Callable[[], str]] = None,
    ):
        """Initialize the loader.

        Args:
            adapter: Storage adapter used on a cache miss
            cache: Content cache
            fingerprint: Returns the current commit fingerprint. Without one
                the cache cannot be validated and every load goes to storage.
        """
        self.adapter = adapter
        self.cache = cache
        self.fingerprint = fingerprint

    def _current_sha(self) -> Optional[str]:
        if self.fingerprint is None:
            return None
        return self.fingerprint()

    def _cache_usable(self, sha: Optional[str]) -> bool:
        """True if the cache may be read; a stale cache is cleared."""
        if sha is None:
            return False
        if self.cache.is_cache_valid(sha):
            return True
        if self.cache.get_cached_commit_sha() is not None:
            logger.info(f"Remote changed (now {sha[:8]}), invalidating content cache")
            self.cache.invalidate_all()
        return False

    def _store(self, key: str, data: Any, sha: Optional[str]) -> None:
        if sha is None:
            return
        stored = self.cache.set_cached_document(key, data, sha)
        if stored and self.cache.get_cached_commit_sha() != sha:
            self.cache.set_cached_commit_sha(sha)

    def _load(self, key: str, load: Callable[[], Optional[Any]]) -> Optional[Any]:
        sha = self._current_sha()
        if self._cache_usable(sha):
            cached = self.cache.get_cached_document(key)
            if cached is not None:
                logger.debug(f"Cache hit: {key}")
                return cached

        logger.debug(f"Cache miss: {key}")
        document = load()
        if document is not None:
            self._store(key, document, sha)
        return document

    def load_page(self, page_id: str) -> Optional[Any]:
        """Load a page document, or None if the page does not exist."""
        file_name = validate_page_id(page_id)
        return self._load(page_key(file_name), lambda: self.adapter.load_draft(page_id))

    def load_globals(self) -> Optional[Any]:
        return self._load(GLOBALS_KEY, self.adapter.load_globals)

    def list_pages(self) -> List[PageInfo]:
        sha = self._current_sha()
        if self._cache_usable(sha):
            cached = self.cache.get_cached_list()
            if cached is not None:
                return [PageInfo.from_dict(item) for item in cached]

        pages = self.adapter.list_pages()
        if sha is not None and self.cache.set_cached_list([p.to_dict() for p in pages], sha):
            if self.cache.get_cached_commit_sha() != sha:
                self.cache.set_cached_commit_sha(sha)
        return pages

    def save_page(
        self,
        page_id: str,
        document: Any,
        message: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> SaveResult:
        """Save through the adapter and overwrite the cached copy."""
        result = self.adapter.save_page(page_id, document, message, cancellation=cancellation)
        self._overwrite(page_key(validate_page_id(page_id)), document)
        return result

    def save_globals(
        self,
        document: Any,
        message: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> SaveResult:
        result = self.adapter.save_globals(document, message, cancellation=cancellation)
        self._overwrite(GLOBALS_KEY, document)
        return result

    def _overwrite(self, key: str, document: Any) -> None:
        sha = self.cache.get_cached_commit_sha()
        if sha is not None:
            self.cache.set_cached_document(key, document, sha)
