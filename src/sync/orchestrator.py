"""Batch commit orchestration.

This module provides the SyncOrchestrator class that commits a ChangeSet
(several pages and optionally the globals document) as one editorial
operation on top of a StorageAdapter.
"""

import logging
from typing import Any, Callable, List, Optional, Tuple

import requests

from src.hosting_client.errors import OperationCancelledError, SyncError
from src.hosting_client.models import CancellationToken
from src.models import ChangeSet
from src.storage import StorageAdapter, StorageMode
from src.storage.paths import globals_path, page_path, validate_page_id
from src.storage.remote_backend import RemoteBackend
from src.sync.models import BatchCommitResult

logger = logging.getLogger(__name__)

# (path, write callable taking message and cancellation)
_Write = Tuple[str, Callable[[str, Optional[CancellationToken]], Any]]


class SyncOrchestrator:
    """Commits ChangeSets through a StorageAdapter.

    Production mode: the draft branch is ensured once up front, then each
    file is committed sequentially with a fresh sha read. A failed file is
    recorded and the batch carries on; files already committed stay
    committed.

    Development mode: every file is written to the local content directory
    first (a local failure is fatal), then the whole changeset is mirrored to
    the draft branch once, best effort.

    Example:
        >>> orchestrator = SyncOrchestrator(adapter)
        >>> result = orchestrator.batch_commit(changeset, "Update landing pages")
        >>> if not result.success:
        ...     print(result.failed)
    """

    def __init__(self, adapter: StorageAdapter):
        self.adapter = adapter

    def batch_commit(
        self,
        changeset: ChangeSet,
        message: str,
        cancellation: Optional[CancellationToken] = None,
    ) -> BatchCommitResult:
        """Commit every document in the changeset with the same message.

        Args:
            changeset: Pages and optional globals to commit
            message: Commit message used for every file
            cancellation: Checked before each file; cancelling stops the batch

        Returns:
            BatchCommitResult listing committed and failed paths

        Raises:
            InvalidPageIdError: If any page id is invalid (nothing is written)
            FilesystemError: If a local write fails (development mode)
            OperationCancelledError: If cancelled between files
        """
        if changeset.is_empty:
            logger.info("Nothing to commit: changeset is empty")
            return BatchCommitResult()

        for page_id in changeset.page_ids:
            validate_page_id(page_id)

        if self.adapter.mode is StorageMode.DEVELOPMENT:
            return self._commit_local(changeset, message, cancellation)
        return self._commit_remote(self.adapter.backend, changeset, message, cancellation)

    def _writes(self, backend, changeset: ChangeSet, **kwargs) -> List[_Write]:
        content_dir = self.adapter.content_dir
        writes: List[_Write] = []
        for change in changeset.pages:
            writes.append((
                page_path(content_dir, change.id),
                lambda msg, token, change=change: backend.write_page(
                    change.id, change.document, msg, cancellation=token, **kwargs
                ),
            ))
        if changeset.globals is not None:
            writes.append((
                globals_path(content_dir),
                lambda msg, token: backend.write_globals(
                    changeset.globals, msg, cancellation=token, **kwargs
                ),
            ))
        return writes

    def _commit_remote(
        self,
        backend: RemoteBackend,
        changeset: ChangeSet,
        message: str,
        cancellation: Optional[CancellationToken],
    ) -> BatchCommitResult:
        result = BatchCommitResult()
        writes = self._writes(backend, changeset, ensure_branch_first=False)

        if cancellation:
            cancellation.raise_if_cancelled("batch_commit")
        try:
            backend.draft_manager.ensure_draft_branch(cancellation=cancellation)
        except OperationCancelledError:
            raise
        except (SyncError, requests.RequestException) as e:
            logger.error(f"Batch commit aborted, draft branch unavailable: {e}")
            result.failed = [(path, str(e)) for path, _ in writes]
            return result

        for path, write in writes:
            if cancellation:
                cancellation.raise_if_cancelled(f"batch_commit({path})")
            try:
                write(message, cancellation)
                result.committed.append(path)
            except OperationCancelledError:
                raise
            except (SyncError, requests.RequestException) as e:
                logger.error(f"Failed to commit {path}: {e}")
                result.failed.append((path, str(e)))

        logger.info(
            f"Batch commit: {len(result.committed)} committed, {len(result.failed)} failed"
        )
        return result

    def _commit_local(
        self,
        changeset: ChangeSet,
        message: str,
        cancellation: Optional[CancellationToken],
    ) -> BatchCommitResult:
        result = BatchCommitResult()
        for path, write in self._writes(self.adapter.backend, changeset):
            if cancellation:
                cancellation.raise_if_cancelled(f"batch_commit({path})")
            write(message, cancellation)
            result.committed.append(path)

        mirror = self.adapter.mirror
        if mirror is None:
            logger.debug("No remote mirror configured, skipping sync")
            return result

        mirror_result = self._commit_remote(mirror, changeset, message, cancellation)
        result.mirrored = mirror_result.success
        if mirror_result.success:
            logger.info("Mirrored batch to the draft branch")
        else:
            logger.warning(
                f"Failed to mirror {len(mirror_result.failed)} file(s) to the draft branch "
                f"(local save kept)"
            )
        return result
