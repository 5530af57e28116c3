"""Storage mode router.

This module provides the StorageAdapter class, which exposes one
save/load/publish contract and routes every call to the backend chosen
once from configuration, and build_storage_adapter, the factory that makes
that choice.
"""

import logging
import time
from typing import Any, List, Optional

import requests

from src.draft_branch import DraftBranchManager
from src.hosting_client import Authenticator, HostingClient, RepositoryRef
from src.hosting_client.errors import OperationCancelledError, SyncError
from src.hosting_client.models import CancellationToken, Clock
from src.models import PageInfo, ReadResult, ReadStatus
from src.storage.backend import StorageBackend
from src.storage.errors import DocumentCorruptedError, FilesystemError
from src.storage.local_backend import LocalBackend
from src.storage.models import SaveResult, StorageMode, SyncConfig
from src.storage.paths import (
    default_globals_message,
    default_page_message,
    globals_path,
    page_path,
)
from src.storage.remote_backend import RemoteBackend

logger = logging.getLogger(__name__)

DEV_MIRROR_SUFFIX = " (dev mode)"


class StorageAdapter:
    """Routes save/load/publish to the configured storage backend.

    In development mode the local write is authoritative. When a mirror is
    configured each save is also committed to the draft branch, best effort:
    a mirror failure is logged and reported in the SaveResult, never raised.
    In production mode every write goes to the draft branch and any failure
    propagates.

    Example:
        >>> adapter = build_storage_adapter(ConfigLoader.load(), token="...")
        >>> adapter.save_page("about", document)
        >>> if adapter.has_unpublished_changes():
        ...     adapter.publish()
    """

    def __init__(self, backend: StorageBackend, mirror: Optional[RemoteBackend] = None):
        """Initialize the adapter.

        Args:
            backend: Primary backend; its mode is the adapter's mode
            mirror: Remote backend used for best-effort mirroring in development mode
        """
        if mirror is not None and backend.mode is not StorageMode.DEVELOPMENT:
            raise ValueError("A remote mirror is only used in development mode")
        self.backend = backend
        self.mirror = mirror

    @property
    def mode(self) -> StorageMode:
        return self.backend.mode

    @property
    def content_dir(self) -> str:
        return self.backend.content_dir

    def _mirror(self, operation: str, write, *args, **kwargs) -> Optional[bool]:
        """Run a mirror write, swallowing and logging any sync failure."""
        if self.mirror is None:
            return None
        try:
            write(*args, **kwargs)
            return True
        except OperationCancelledError:
            raise
        except (SyncError, requests.RequestException) as e:
            logger.warning(f"Remote mirror of {operation} failed (local save kept): {e}")
            return False

    def _unwrap(self, result: ReadResult, path: str) -> Optional[Any]:
        """Document for FOUND, None for NOT_FOUND, raise otherwise."""
        if result.status is ReadStatus.FOUND:
            return result.value
        if result.status is ReadStatus.NOT_FOUND:
            return None
        if result.status is ReadStatus.CORRUPTED:
            raise DocumentCorruptedError(path, result.error or 'unreadable')
        raise FilesystemError(path, 'read', result.error)

    def save_page(
        self,
        page_id: str,
        document: Any,
        message: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> SaveResult:
        """Save a page document.

        Raises:
            InvalidPageIdError: If the page id is not allowed
            FilesystemError: If the local write fails (development mode)
            ConflictError: If the draft branch copy changed underneath (production mode)
        """
        message = message or default_page_message(page_id)
        result = self.backend.write_page(page_id, document, message, cancellation=cancellation)
        if self.mirror is not None:
            result.mirrored = self._mirror(
                f"page {page_id}",
                self.mirror.write_page,
                page_id, document, message + DEV_MIRROR_SUFFIX,
                cancellation=cancellation,
            )
        return result

    def load_draft(self, page_id: str) -> Optional[Any]:
        """Load the staged copy of a page (the local file in development mode).

        Returns:
            The document, or None if the page does not exist
        """
        return self._unwrap(
            self.backend.read_page(page_id), page_path(self.content_dir, page_id)
        )

    def save_globals(
        self,
        document: Any,
        message: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> SaveResult:
        message = message or default_globals_message()
        result = self.backend.write_globals(document, message, cancellation=cancellation)
        if self.mirror is not None:
            result.mirrored = self._mirror(
                "globals",
                self.mirror.write_globals,
                document, message + DEV_MIRROR_SUFFIX,
                cancellation=cancellation,
            )
        return result

    def load_globals(self) -> Optional[Any]:
        return self._unwrap(self.backend.read_globals(), globals_path(self.content_dir))

    def list_pages(self) -> List[PageInfo]:
        return self.backend.list_pages()

    def has_unpublished_changes(self) -> bool:
        """Always False in development mode; draft branch existence in production."""
        return self.backend.has_unpublished_changes()

    def publish(self) -> Optional[str]:
        """Merge the draft branch into the default branch (no-op in development mode)."""
        if self.mode is StorageMode.DEVELOPMENT:
            logger.debug("Publish skipped: local saves are already live")
            return None
        return self.backend.publish()


def build_hosting_client(
    config: SyncConfig,
    authenticator: Authenticator,
    session: Optional[requests.Session] = None,
    clock: Clock = time.monotonic,
) -> HostingClient:
    """Create a HostingClient for the configured repository."""
    return HostingClient(
        RepositoryRef(config.repository.owner, config.repository.name),
        authenticator,
        api_url=config.api_url,
        timeout=config.request_timeout,
        session=session,
        clock=clock,
    )


def build_storage_adapter(
    config: SyncConfig,
    token: Optional[str] = None,
    project_root: str = ".",
    session: Optional[requests.Session] = None,
    clock: Clock = time.monotonic,
) -> StorageAdapter:
    """Build the adapter for the configured mode. The mode is fixed from here on.

    In development mode a remote mirror is attached only when mirroring is
    enabled and a credential is available.

    Args:
        config: Loaded configuration
        token: Caller-supplied bearer credential (GITHUB_TOKEN is the fallback)
        project_root: Directory the content directory is relative to
        session: Optional requests session for the hosting client
        clock: Time source for the hosting client's branch cache
    """
    if config.mode is StorageMode.DEVELOPMENT:
        local = LocalBackend(project_root, config.content_dir)
        mirror = None
        if config.mirror_to_remote:
            authenticator = Authenticator(token, endpoint=config.api_url)
            if authenticator.has_credentials():
                client = build_hosting_client(config, authenticator, session, clock)
                mirror = RemoteBackend(
                    DraftBranchManager(client, config.draft_branch), config.content_dir
                )
            else:
                logger.info("No credential available, remote mirroring disabled")
        return StorageAdapter(local, mirror)

    authenticator = Authenticator(token, endpoint=config.api_url)
    client = build_hosting_client(config, authenticator, session, clock)
    manager = DraftBranchManager(client, config.draft_branch)
    return StorageAdapter(RemoteBackend(manager, config.content_dir))
