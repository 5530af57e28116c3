"""Data models shared by the cache, storage and sync packages."""

from src.models.change_set import ChangeSet, PageChange
from src.models.page_info import PageInfo, is_valid_page_info
from src.models.read_result import ReadResult, ReadStatus

__all__ = [
    'ChangeSet',
    'PageChange',
    'PageInfo',
    'is_valid_page_info',
    'ReadResult',
    'ReadStatus',
]
