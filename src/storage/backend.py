"""Storage backend contract.

Two implementations exist: LocalBackend writes the local content directory
(development mode) and RemoteBackend writes the shared draft branch
(production mode). The StorageAdapter holds exactly one of them, chosen once
from configuration.
"""

from typing import Any, List, Optional, Protocol

from src.hosting_client.models import CancellationToken
from src.models import PageInfo, ReadResult
from src.storage.models import SaveResult, StorageMode


class StorageBackend(Protocol):
    """Uniform save/load/publish contract over one storage location."""

    mode: StorageMode

    def write_page(
        self,
        page_id: str,
        document: Any,
        message: str,
        cancellation: Optional[CancellationToken] = None,
    ) -> SaveResult: ...

    def read_page(self, page_id: str) -> ReadResult: ...

    def write_globals(
        self,
        document: Any,
        message: str,
        cancellation: Optional[CancellationToken] = None,
    ) -> SaveResult: ...

    def read_globals(self) -> ReadResult: ...

    def list_pages(self) -> List[PageInfo]: ...

    def has_unpublished_changes(self) -> bool: ...

    def publish(self) -> Optional[str]: ...
