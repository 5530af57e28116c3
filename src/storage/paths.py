"""Page id validation and document path mapping.

The same relative paths are used on the local disk and in the remote
repository:
    <content_dir>/pages/<file>.json   one document per page
    <content_dir>/globals.json        the global-variables document
"""

import json
import os
import posixpath
import re
from typing import Any, Optional

from src.models.page_info import page_file_name

from .errors import InvalidPageIdError

PAGE_ID_PATTERN = re.compile(r'^[a-z0-9_-]+$', re.IGNORECASE)

PAGES_SUBDIR = 'pages'
GLOBALS_FILE = 'globals.json'


def validate_page_id(page_id: str, pages_dir: Optional[str] = None) -> str:
    """Validate a page id and return the file name it is stored under.

    Args:
        page_id: Page id supplied by the caller
        pages_dir: Local pages directory; when given, the resolved file path
            must also stay inside it

    Returns:
        File name without extension (e.g. "index" for "home")

    Raises:
        InvalidPageIdError: If the id is empty, contains path characters or
            characters outside [A-Za-z0-9_-], or resolves outside pages_dir
    """
    if not isinstance(page_id, str) or not page_id:
        raise InvalidPageIdError(str(page_id), 'page id is empty')
    if '\0' in page_id:
        raise InvalidPageIdError(page_id, 'contains null bytes')
    if '/' in page_id or '\\' in page_id or '..' in page_id:
        raise InvalidPageIdError(page_id, 'contains path characters')
    if not PAGE_ID_PATTERN.match(page_id):
        raise InvalidPageIdError(page_id, 'only letters, digits, "-" and "_" are allowed')

    file_name = page_file_name(page_id)

    if pages_dir is not None:
        base = os.path.realpath(pages_dir)
        resolved = os.path.realpath(os.path.join(base, f"{file_name}.json"))
        if not resolved.startswith(base + os.sep):
            raise InvalidPageIdError(page_id, 'resolved path escapes the pages directory')

    return file_name


def page_path(content_dir: str, page_id: str) -> str:
    """Relative (posix) path of a page document."""
    file_name = validate_page_id(page_id)
    return posixpath.join(content_dir, PAGES_SUBDIR, f"{file_name}.json")


def globals_path(content_dir: str) -> str:
    return posixpath.join(content_dir, GLOBALS_FILE)


def page_id_from_path(path: str) -> Optional[str]:
    """Page id of a page document path, or None if it is not a page document."""
    name = posixpath.basename(path)
    if not name.endswith('.json'):
        return None
    page_id = name[:-len('.json')]
    return page_id if PAGE_ID_PATTERN.match(page_id) else None


def serialize_document(document: Any) -> str:
    """Serialize a document the way every stored file is written."""
    return json.dumps(document, indent=2, ensure_ascii=False)


def default_page_message(page_id: str) -> str:
    return f"Update {page_id} via CMS"


def default_globals_message() -> str:
    return "Update global variables via CMS"
