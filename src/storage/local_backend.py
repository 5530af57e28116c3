"""Local filesystem storage backend (development mode)."""

import json
import logging
import os
import tempfile
from typing import Any, List, Optional

from src.hosting_client.models import CancellationToken
from src.models import PageInfo, ReadResult
from src.storage.errors import FilesystemError
from src.storage.models import SaveResult, StorageMode
from src.storage.paths import (
    PAGES_SUBDIR,
    globals_path,
    page_id_from_path,
    page_path,
    serialize_document,
    validate_page_id,
)

logger = logging.getLogger(__name__)


class LocalBackend:
    """Reads and writes content documents in the local content directory.

    Local writes are immediately live, so there is never anything to
    publish. Writes go through a temporary file and an atomic rename.

    Example:
        >>> backend = LocalBackend(".", "src/content")
        >>> backend.write_page("about", {"components": []}, "Update about via CMS")
        >>> backend.read_page("about").value
        {'components': []}
    """

    mode = StorageMode.DEVELOPMENT

    def __init__(self, project_root: str, content_dir: str = "src/content"):
        """Initialize the backend.

        Args:
            project_root: Directory the content directory is relative to
            content_dir: Content directory, relative to project_root
        """
        self.project_root = os.path.abspath(project_root)
        self.content_dir = content_dir
        self.pages_dir = os.path.join(self.project_root, content_dir, PAGES_SUBDIR)

    def _absolute(self, relative_path: str) -> str:
        return os.path.join(self.project_root, *relative_path.split('/'))

    def _write(self, relative_path: str, document: Any) -> None:
        """Atomically write a JSON document.

        Raises:
            FilesystemError: If the directory or file cannot be written
        """
        file_path = self._absolute(relative_path)
        dir_path = os.path.dirname(file_path)
        try:
            os.makedirs(dir_path, exist_ok=True)
        except OSError as e:
            raise FilesystemError(dir_path, 'create_directory', str(e))

        content = serialize_document(document)
        fd, tmp_path = tempfile.mkstemp(dir=dir_path, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(content)
            os.replace(tmp_path, file_path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise FilesystemError(file_path, 'write', str(e))
        logger.debug(f"Wrote {file_path}")

    def _read(self, relative_path: str) -> ReadResult:
        file_path = self._absolute(relative_path)
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            return ReadResult.not_found()
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read {file_path}: {e}")
            return ReadResult.failed(str(e))

        try:
            return ReadResult.found(json.loads(content))
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in {file_path}: {e}")
            return ReadResult.corrupted(str(e))

    def write_page(
        self,
        page_id: str,
        document: Any,
        message: str,
        cancellation: Optional[CancellationToken] = None,
    ) -> SaveResult:
        """Write a page document. The message is unused for local writes."""
        validate_page_id(page_id, self.pages_dir)
        if cancellation:
            cancellation.raise_if_cancelled(f"write_page({page_id})")
        relative_path = page_path(self.content_dir, page_id)
        self._write(relative_path, document)
        logger.info(f"Saved page {page_id} locally")
        return SaveResult(path=relative_path)

    def read_page(self, page_id: str) -> ReadResult:
        validate_page_id(page_id, self.pages_dir)
        return self._read(page_path(self.content_dir, page_id))

    def write_globals(
        self,
        document: Any,
        message: str,
        cancellation: Optional[CancellationToken] = None,
    ) -> SaveResult:
        if cancellation:
            cancellation.raise_if_cancelled("write_globals")
        relative_path = globals_path(self.content_dir)
        self._write(relative_path, document)
        logger.info("Saved globals locally")
        return SaveResult(path=relative_path)

    def read_globals(self) -> ReadResult:
        return self._read(globals_path(self.content_dir))

    def list_pages(self) -> List[PageInfo]:
        """List page documents in the local pages directory, sorted by name."""
        try:
            names = os.listdir(self.pages_dir)
        except FileNotFoundError:
            return []
        except OSError as e:
            raise FilesystemError(self.pages_dir, 'list', str(e))

        page_ids = {page_id_from_path(name) for name in names}
        pages = [PageInfo.from_page_id(page_id) for page_id in page_ids if page_id]
        return sorted(pages, key=lambda p: (p.name.lower(), p.id))

    def has_unpublished_changes(self) -> bool:
        return False

    def publish(self) -> Optional[str]:
        return None
