"""Cache contracts.

The synchronous and asynchronous backends honour the same contract and
differ only in I/O style. Getters return None on absence or corruption,
setters return False on write failure, and nothing raises.
"""

from typing import Any, List, Optional, Protocol

from src.models import ReadResult


class ContentCache(Protocol):
    """Synchronous commit-fingerprint-keyed cache."""

    def get_cached_commit_sha(self) -> Optional[str]: ...

    def set_cached_commit_sha(self, sha: str) -> bool: ...

    def is_cache_valid(self, current_sha: str) -> bool: ...

    def read_document(self, key: str) -> ReadResult: ...

    def get_cached_document(self, key: str) -> Optional[Any]: ...

    def set_cached_document(self, key: str, data: Any, sha: str) -> bool: ...

    def get_cached_list(self) -> Optional[List[Any]]: ...

    def set_cached_list(self, items: List[Any], sha: str) -> bool: ...

    def invalidate_all(self) -> None: ...

    def list_cached_keys(self) -> List[str]: ...

    def remove_cached_document(self, key: str) -> None: ...


class AsyncContentCache(Protocol):
    """Asynchronous commit-fingerprint-keyed cache."""

    async def get_cached_commit_sha(self) -> Optional[str]: ...

    async def set_cached_commit_sha(self, sha: str) -> bool: ...

    async def is_cache_valid(self, current_sha: str) -> bool: ...

    async def read_document(self, key: str) -> ReadResult: ...

    async def get_cached_document(self, key: str) -> Optional[Any]: ...

    async def set_cached_document(self, key: str, data: Any, sha: str) -> bool: ...

    async def get_cached_list(self) -> Optional[List[Any]]: ...

    async def set_cached_list(self, items: List[Any], sha: str) -> bool: ...

    async def invalidate_all(self) -> None: ...

    async def list_cached_keys(self) -> List[str]: ...

    async def remove_cached_document(self, key: str) -> None: ...
