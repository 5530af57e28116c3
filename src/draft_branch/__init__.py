"""Shared draft-branch lifecycle for collaborative editing.

All editors commit unpublished work to one well-known branch; publishing
merges that branch into the repository's default branch.
"""

from .draft_manager import DEFAULT_DRAFT_BRANCH, DraftBranchManager
from .errors import NoDraftBranchError

__all__ = [
    'DEFAULT_DRAFT_BRANCH',
    'DraftBranchManager',
    'NoDraftBranchError',
]
