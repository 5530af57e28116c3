"""Data models for storage.

This module defines the configuration and result models used by the storage
backends and the adapter. All models use dataclasses.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from src.draft_branch import DEFAULT_DRAFT_BRANCH
from src.hosting_client.api_wrapper import DEFAULT_API_URL


class StorageMode(Enum):
    """Where saves go. Resolved once from configuration, never re-probed."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"


@dataclass(frozen=True)
class RepositoryConfig:
    """Remote content repository.

    Attributes:
        owner: Account or organisation that owns the repository
        name: Repository name
    """
    owner: str
    name: str


@dataclass
class SyncConfig:
    """Complete sync configuration.

    Attributes:
        repository: Remote content repository
        mode: Storage mode (development writes local files, production writes
            the draft branch)
        content_dir: Content directory, relative to the project root locally
            and to the repository root remotely
        draft_branch: Shared draft branch name
        api_url: Hosting API base URL
        request_timeout: Per-request timeout in seconds
        mirror_to_remote: In development mode, also mirror saves to the draft
            branch (best effort)
        cache_dir: Directory for the local content cache
    """
    repository: RepositoryConfig
    mode: StorageMode = StorageMode.PRODUCTION
    content_dir: str = "src/content"
    draft_branch: str = DEFAULT_DRAFT_BRANCH
    api_url: str = DEFAULT_API_URL
    request_timeout: float = 30.0
    mirror_to_remote: bool = True
    cache_dir: str = ".cms-sync/cache"


@dataclass
class SaveResult:
    """Outcome of saving one document.

    Attributes:
        path: Path written, relative to the project/repository root
        commit_sha: Sha of the remote commit (None for local-only writes)
        mirrored: Whether the best-effort remote mirror succeeded
            (None when no mirror was attempted)
    """
    path: str
    commit_sha: Optional[str] = None
    mirrored: Optional[bool] = None
