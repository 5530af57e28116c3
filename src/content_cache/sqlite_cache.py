"""SQLite-backed asynchronous content cache with a draft write-queue."""

import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import aiosqlite

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
from src.models import ChangeSet, PageChange, ReadResult
from src.models.page_info import page_file_name

logger = logging.getLogger(__name__)

GLOBALS_DRAFT_KEY = 'globals'
CHANGED_PAGES_KEY = 'changed_pages'


def _page_draft_key(page_id: str) -> str:
    return f"page:{page_id}"


def _update_draft_field(
    data: Dict[str, Any],
    field_name: str,
    value: Any,
    locale: Optional[str] = None,
    field_type: Optional[str] = None,
) -> None:
    """Set a field value inside a component's or variable's data mapping.

    A translatable field (its value is a locale mapping) only has the given
    locale replaced. A missing field is created with the given type, or
    "unknown" when none is given.
    """
    field = data.get(field_name)
    if locale and isinstance(field, dict) and isinstance(field.get('value'), dict):
        field['value'][locale] = value
    elif not isinstance(field, dict):
        data[field_name] = {'type': field_type or 'unknown', 'value': value}
    else:
        field['value'] = value
        if field_type and field.get('type') == 'unknown':
            field['type'] = field_type


class SqliteContentCache:
    """Asynchronous commit-fingerprint-keyed cache stored in SQLite.

    Honours the same contract as FileContentCache. It also keeps unsaved
    editor drafts (one per page plus one for globals) and the ordered list
    of changed page ids, so pending edits survive a restart or an outage
    and can be drained into one ChangeSet.

    Tables:
    - cache: prefixed key -> stored string (entries and fingerprint)
    - drafts: draft key -> type, JSON document, updated_at
    - meta: bookkeeping such as the changed page id list

    Example:
        >>> cache = SqliteContentCache(Path(".cms-sync/cache.db"))
        >>> await cache.initialize()
        >>> await cache.save_page_draft("index", document)
        >>> changeset = await cache.pending_changeset()
        >>> await cache.close()
    """

    def __init__(self, db_path: Path, clock: Callable[[], float] = time.time):
        """Initialize with path to SQLite database file.

        Args:
            db_path: Path to the SQLite database file (":memory:" for tests)
            clock: Wall-clock time source in seconds
        """
        self.db_path = db_path
        self._clock = clock
        self._db: Optional[aiosqlite.Connection] = None

    async def initialize(self) -> None:
        """Open the database and create tables if missing. Called once at startup."""
        if str(self.db_path) != ':memory:':
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self.db_path)
        await self._db.execute("PRAGMA journal_mode=WAL")
        await self._db.executescript(
            """
            CREATE TABLE IF NOT EXISTS cache (
                key     TEXT PRIMARY KEY,
                value   TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS drafts (
                key         TEXT PRIMARY KEY,
                type        TEXT NOT NULL,
                data        TEXT NOT NULL,
                updated_at  INTEGER NOT NULL,

                CHECK (type IN ('page', 'globals'))
            );

            CREATE TABLE IF NOT EXISTS meta (
                key     TEXT PRIMARY KEY,
                value   TEXT NOT NULL
            );
            """
        )
        await self._db.commit()
        logger.info(f"Content cache initialized with database at {self.db_path}")

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    async def __aenter__(self) -> 'SqliteContentCache':
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _conn(self) -> aiosqlite.Connection:
        if not self._db:
            raise RuntimeError("SqliteContentCache not initialized")
        return self._db

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    # ------------------------------------------------------------------
    # Raw string storage
    # ------------------------------------------------------------------

    async def _get_item(self, table: str, key: str) -> Optional[str]:
        async with self._conn().execute(
            f"SELECT value FROM {table} WHERE key = ?", (key,)
        ) as cursor:
            row = await cursor.fetchone()
        return row[0] if row else None

    async def _set_items(self, table: str, items: Dict[str, str]) -> None:
        db = self._conn()
        await db.executemany(
            f"INSERT OR REPLACE INTO {table} (key, value) VALUES (?, ?)",
            list(items.items()),
        )
        await db.commit()

    # ------------------------------------------------------------------
    # Commit fingerprint
    # ------------------------------------------------------------------

    async def get_cached_commit_sha(self) -> Optional[str]:
        try:
            return await self._get_item('cache', storage_key(COMMIT_SHA_KEY))
        except aiosqlite.Error as e:
            logger.debug(f"Failed to read cached commit sha: {e}")
            return None

    async def set_cached_commit_sha(self, sha: str) -> bool:
        try:
            await self._set_items('cache', {
                storage_key(COMMIT_SHA_KEY): sha,
                storage_key(TIMESTAMP_KEY): str(self._now_ms()),
            })
            return True
        except aiosqlite.Error as e:
            logger.error(f"Failed to set cached commit sha: {e}")
            return False

    async def is_cache_valid(self, current_sha: str) -> bool:
        try:
            stored_sha = await self._get_item('cache', storage_key(COMMIT_SHA_KEY))
            stored_timestamp = await self._get_item('cache', storage_key(TIMESTAMP_KEY))
        except aiosqlite.Error:
            return False
        return is_fingerprint_valid(stored_sha, stored_timestamp, current_sha, self._now_ms())

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def read_document(self, key: str) -> ReadResult:
        try:
            raw = await self._get_item('cache', storage_key(key))
        except aiosqlite.Error as e:
            return ReadResult.failed(str(e))
        return decode_entry(raw)

    async def get_cached_document(self, key: str) -> Optional[Any]:
        result = await self.read_document(key)
        if not result.is_found:
            if result.error:
                logger.debug(f"Cache miss for {key}: {result.status.value} ({result.error})")
            return None
        return result.value.data

    async def set_cached_document(self, key: str, data: Any, sha: str) -> bool:
        entry = CacheEntry(data=data, commit_sha=sha, timestamp_ms=self._now_ms())
        try:
            await self._set_items('cache', {storage_key(key): entry.to_json()})
            return True
        except (aiosqlite.Error, TypeError, ValueError) as e:
            logger.error(f"Failed to cache {key}: {e}")
            return False

    async def remove_cached_document(self, key: str) -> None:
        try:
            db = self._conn()
            await db.execute("DELETE FROM cache WHERE key = ?", (storage_key(key),))
            await db.commit()
        except aiosqlite.Error as e:
            logger.error(f"Failed to remove cached {key}: {e}")

    async def list_cached_keys(self) -> List[str]:
        try:
            async with self._conn().execute(
                "SELECT key FROM cache WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(CACHE_PREFIX), CACHE_PREFIX),
            ) as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error:
            return []
        keys = [row[0][len(CACHE_PREFIX):] for row in rows]
        return [key for key in keys if key not in RESERVED_KEYS]

    async def get_cached_list(self) -> Optional[List[Any]]:
        result = await self.read_document(PAGES_LIST_KEY)
        if not result.is_found or not is_valid_list(result.value.data):
            return None
        return result.value.data

    async def set_cached_list(self, items: List[Any], sha: str) -> bool:
        return await self.set_cached_document(PAGES_LIST_KEY, items, sha)

    async def invalidate_all(self) -> None:
        """Remove every cached document, the page list and the stored fingerprint.

        Drafts are untouched: they are unsaved edits, not cached remote state.
        """
        try:
            db = self._conn()
            await db.execute(
                "DELETE FROM cache WHERE substr(key, 1, ?) = ?",
                (len(CACHE_PREFIX), CACHE_PREFIX),
            )
            await db.commit()
            logger.info("Invalidated cache")
        except aiosqlite.Error as e:
            logger.error(f"Failed to invalidate cache: {e}")

    # ------------------------------------------------------------------
    # Draft write-queue
    # ------------------------------------------------------------------

    async def _get_draft(self, key: str) -> Optional[Any]:
        async with self._conn().execute(
            "SELECT data FROM drafts WHERE key = ?", (key,)
        ) as cursor:
            row = await cursor.fetchone()
        return json.loads(row[0]) if row else None

    async def _put_draft(self, key: str, draft_type: str, data: Any) -> None:
        await self._conn().execute(
            "INSERT OR REPLACE INTO drafts (key, type, data, updated_at) VALUES (?, ?, ?, ?)",
            (key, draft_type, json.dumps(data, ensure_ascii=False), self._now_ms()),
        )

    async def _set_changed_page_ids(self, page_ids: List[str]) -> None:
        await self._conn().execute(
            "INSERT OR REPLACE INTO meta (key, value) VALUES (?, ?)",
            (CHANGED_PAGES_KEY, json.dumps(page_ids)),
        )

    async def save_page_draft(self, page_id: str, data: Any) -> None:
        """Store a page draft and record the page as changed.

        Ids that share a file ("home" and "index") share one draft.
        """
        page_id = page_file_name(page_id)
        try:
            await self._put_draft(_page_draft_key(page_id), 'page', data)
            changed = await self.get_changed_page_ids()
            if page_id not in changed:
                changed.append(page_id)
                await self._set_changed_page_ids(changed)
            await self._conn().commit()
        except (aiosqlite.Error, TypeError, ValueError) as e:
            logger.error(f"Failed to save page draft {page_id}: {e}")

    async def get_page_draft(self, page_id: str) -> Optional[Any]:
        page_id = page_file_name(page_id)
        try:
            return await self._get_draft(_page_draft_key(page_id))
        except (aiosqlite.Error, ValueError) as e:
            logger.error(f"Failed to get page draft {page_id}: {e}")
            return None

    async def remove_page_draft(self, page_id: str) -> None:
        page_id = page_file_name(page_id)
        try:
            db = self._conn()
            await db.execute("DELETE FROM drafts WHERE key = ?", (_page_draft_key(page_id),))
            changed = await self.get_changed_page_ids()
            if page_id in changed:
                changed.remove(page_id)
                await self._set_changed_page_ids(changed)
            await db.commit()
        except aiosqlite.Error as e:
            logger.error(f"Failed to remove page draft {page_id}: {e}")

    async def save_globals_draft(self, data: Any) -> None:
        try:
            await self._put_draft(GLOBALS_DRAFT_KEY, 'globals', data)
            await self._conn().commit()
        except (aiosqlite.Error, TypeError, ValueError) as e:
            logger.error(f"Failed to save globals draft: {e}")

    async def get_globals_draft(self) -> Optional[Any]:
        try:
            return await self._get_draft(GLOBALS_DRAFT_KEY)
        except (aiosqlite.Error, ValueError) as e:
            logger.error(f"Failed to get globals draft: {e}")
            return None

    async def has_globals_draft(self) -> bool:
        try:
            async with self._conn().execute(
                "SELECT 1 FROM drafts WHERE key = ?", (GLOBALS_DRAFT_KEY,)
            ) as cursor:
                return await cursor.fetchone() is not None
        except aiosqlite.Error:
            return False

    async def get_changed_page_ids(self) -> List[str]:
        """Page ids with drafts, in the order they were first changed."""
        try:
            raw = await self._get_item('meta', CHANGED_PAGES_KEY)
            data = json.loads(raw) if raw else []
        except (aiosqlite.Error, ValueError) as e:
            logger.error(f"Failed to get changed pages: {e}")
            return []
        return data if isinstance(data, list) else []

    async def update_field_in_page_draft(
        self,
        page_id: str,
        component_id: str,
        field_name: str,
        value: Any,
        locale: Optional[str] = None,
        field_type: Optional[str] = None,
    ) -> bool:
        """Set one field of one component in a page draft.

        Returns:
            False if there is no draft, no such component, or the write failed
        """
        page_id = page_file_name(page_id)
        draft = await self.get_page_draft(page_id)
        if not isinstance(draft, dict) or not isinstance(draft.get('components'), list):
            return False

        component = next(
            (c for c in draft['components'] if isinstance(c, dict) and c.get('id') == component_id),
            None,
        )
        if component is None:
            return False
        if not isinstance(component.get('data'), dict):
            component['data'] = {}

        _update_draft_field(component['data'], field_name, value, locale, field_type)
        try:
            await self._put_draft(_page_draft_key(page_id), 'page', draft)
            await self._conn().commit()
        except aiosqlite.Error as e:
            logger.error(f"Failed to update field in page draft {page_id}: {e}")
            return False
        return True

    async def update_field_in_globals_draft(
        self,
        variable_id: str,
        field_name: str,
        value: Any,
        locale: Optional[str] = None,
        field_type: Optional[str] = None,
    ) -> bool:
        """Set one field of one variable in the globals draft."""
        draft = await self.get_globals_draft()
        if not isinstance(draft, dict) or not isinstance(draft.get('variables'), list):
            return False

        variable = next(
            (v for v in draft['variables'] if isinstance(v, dict) and v.get('id') == variable_id),
            None,
        )
        if variable is None:
            return False
        if not isinstance(variable.get('data'), dict):
            variable['data'] = {}

        _update_draft_field(variable['data'], field_name, value, locale, field_type)
        try:
            await self._put_draft(GLOBALS_DRAFT_KEY, 'globals', draft)
            await self._conn().commit()
        except aiosqlite.Error as e:
            logger.error(f"Failed to update field in globals draft: {e}")
            return False
        return True

    async def pending_changeset(self) -> Optional[ChangeSet]:
        """Collect every queued draft into one ChangeSet (None if nothing is queued)."""
        pages = []
        for page_id in await self.get_changed_page_ids():
            draft = await self.get_page_draft(page_id)
            if draft is not None:
                pages.append(PageChange(id=page_id, document=draft))

        globals_draft = await self.get_globals_draft()
        changeset = ChangeSet(pages=pages, globals=globals_draft)
        return None if changeset.is_empty else changeset

    async def clear_all_drafts(self) -> None:
        """Drop every draft and the changed page list (after a successful commit)."""
        try:
            db = self._conn()
            await db.execute("DELETE FROM drafts")
            await db.execute("DELETE FROM meta WHERE key = ?", (CHANGED_PAGES_KEY,))
            await db.commit()
            logger.info("Cleared all drafts")
        except aiosqlite.Error as e:
            logger.error(f"Failed to clear drafts: {e}")
