"""Remote storage backend: the shared draft branch (production mode)."""

import logging
from typing import Any, List, Optional

from src.draft_branch import DraftBranchManager
from src.hosting_client.models import CancellationToken
from src.models import PageInfo, ReadResult
from src.storage.models import SaveResult, StorageMode
from src.storage.paths import (
    PAGES_SUBDIR,
    globals_path,
    page_id_from_path,
    page_path,
    serialize_document,
)

logger = logging.getLogger(__name__)


class RemoteBackend:
    """Commits content documents to the draft branch through a DraftBranchManager.

    Reads come from the draft branch while it exists and from the default
    branch otherwise, since a missing draft branch means nothing is staged.
    Hosting errors propagate unchanged: a remote read failure other than
    "not found" is fatal to the call.
    """

    mode = StorageMode.PRODUCTION

    def __init__(self, draft_manager: DraftBranchManager, content_dir: str = "src/content"):
        self.draft_manager = draft_manager
        self.client = draft_manager.client
        self.content_dir = content_dir

    def _read_branch(self) -> str:
        if self.draft_manager.has_draft_changes():
            return self.draft_manager.draft_branch_name()
        return self.client.get_default_branch()

    def _commit(
        self,
        path: str,
        document: Any,
        message: str,
        cancellation: Optional[CancellationToken],
        ensure_branch_first: bool = True,
    ) -> SaveResult:
        commit_sha = self.client.commit_content(
            path,
            serialize_document(document),
            message,
            self.draft_manager.draft_branch_name(),
            ensure_branch_first=ensure_branch_first,
            cancellation=cancellation,
        )
        return SaveResult(path=path, commit_sha=commit_sha)

    def write_page(
        self,
        page_id: str,
        document: Any,
        message: str,
        cancellation: Optional[CancellationToken] = None,
        ensure_branch_first: bool = True,
    ) -> SaveResult:
        return self._commit(
            page_path(self.content_dir, page_id), document, message,
            cancellation, ensure_branch_first,
        )

    def read_page(self, page_id: str) -> ReadResult:
        document = self.client.get_file_content(
            page_path(self.content_dir, page_id), self._read_branch()
        )
        return ReadResult.not_found() if document is None else ReadResult.found(document)

    def write_globals(
        self,
        document: Any,
        message: str,
        cancellation: Optional[CancellationToken] = None,
        ensure_branch_first: bool = True,
    ) -> SaveResult:
        return self._commit(
            globals_path(self.content_dir), document, message,
            cancellation, ensure_branch_first,
        )

    def read_globals(self) -> ReadResult:
        document = self.client.get_file_content(
            globals_path(self.content_dir), self._read_branch()
        )
        return ReadResult.not_found() if document is None else ReadResult.found(document)

    def list_pages(self) -> List[PageInfo]:
        """List page documents on the draft branch (or default branch), sorted by name."""
        pages_dir = f"{self.content_dir}/{PAGES_SUBDIR}"
        paths = self.client.list_directory(pages_dir, self._read_branch())
        page_ids = {page_id_from_path(path) for path in paths}
        pages = [PageInfo.from_page_id(page_id) for page_id in page_ids if page_id]
        return sorted(pages, key=lambda p: (p.name.lower(), p.id))

    def has_unpublished_changes(self) -> bool:
        return self.draft_manager.has_draft_changes()

    def publish(self) -> Optional[str]:
        return self.draft_manager.publish()
