"""Cache entry model and the storage rules shared by every cache backend.

Both backends store plain strings under prefixed keys, so the entry
encoding, the validity rule and the page-list validation live here and
the backends only differ in how they move strings in and out.
"""

import json
from dataclasses import dataclass
from typing import Any, Optional

from src.models import ReadResult, is_valid_page_info

CACHE_PREFIX = 'cms_cache_'
PAGE_KEY_PREFIX = 'page_'
GLOBALS_KEY = 'globals'
PAGES_LIST_KEY = 'pages_list'
COMMIT_SHA_KEY = 'commit_sha'
TIMESTAMP_KEY = 'timestamp'

# Keys that are bookkeeping, not cached documents
RESERVED_KEYS = frozenset({PAGES_LIST_KEY, COMMIT_SHA_KEY, TIMESTAMP_KEY})

CACHE_MAX_AGE_MS = 24 * 60 * 60 * 1000


def page_key(page_id: str) -> str:
    """Document key under which a page is cached."""
    return f"{PAGE_KEY_PREFIX}{page_id}"


def storage_key(key: str) -> str:
    return f"{CACHE_PREFIX}{key}"


@dataclass
class CacheEntry:
    """Cached data tagged with the remote state it was fetched against.

    Attributes:
        data: The cached document or list
        commit_sha: Commit fingerprint the data was fetched against
        timestamp_ms: Wall-clock time the entry was written, in milliseconds
    """
    data: Any
    commit_sha: str
    timestamp_ms: int

    def to_json(self) -> str:
        return json.dumps(
            {'data': self.data, 'commitSha': self.commit_sha, 'timestamp': self.timestamp_ms},
            ensure_ascii=False,
        )

    @classmethod
    def from_json(cls, raw: str) -> 'CacheEntry':
        """Parse a stored entry.

        Raises:
            ValueError: If the stored text is not a well-formed entry
        """
        entry = json.loads(raw)
        if not isinstance(entry, dict) or 'data' not in entry:
            raise ValueError("stored value is not a cache entry")
        return cls(
            data=entry['data'],
            commit_sha=str(entry.get('commitSha', '')),
            timestamp_ms=int(entry.get('timestamp', 0)),
        )


def decode_entry(raw: Optional[str]) -> ReadResult:
    """Turn a stored string into a tagged read result."""
    if raw is None:
        return ReadResult.not_found()
    try:
        return ReadResult.found(CacheEntry.from_json(raw))
    except (ValueError, TypeError) as e:
        return ReadResult.corrupted(str(e))


def is_valid_list(data: Any) -> bool:
    """A cached page list is valid only if every element is a PageInfo shape."""
    return isinstance(data, list) and all(is_valid_page_info(item) for item in data)


def is_fingerprint_valid(
    stored_sha: Optional[str],
    stored_timestamp: Optional[str],
    current_sha: str,
    now_ms: int,
) -> bool:
    """Validity rule: same commit fingerprint and younger than 24 hours."""
    if not stored_sha or stored_sha != current_sha or not stored_timestamp:
        return False
    try:
        timestamp = int(stored_timestamp)
    except ValueError:
        return False
    return now_ms - timestamp < CACHE_MAX_AGE_MS
