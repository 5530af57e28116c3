"""Data models for the hosting client.

All models use dataclasses for clean, type-safe data structures,
following the patterns established in src/storage/models.py.
"""

import threading
from dataclasses import dataclass
from typing import Callable, Optional

from .errors import OperationCancelledError

# Returns the current time in seconds. Injected so tests can control TTLs.
Clock = Callable[[], float]


@dataclass(frozen=True)
class RepositoryRef:
    """Identifies the remote content repository.

    Immutable for the lifetime of a process.

    Attributes:
        owner: Account or organisation that owns the repository
        name: Repository name
    """
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class Identity:
    """The authenticated account behind a bearer credential.

    Attributes:
        login: Account login name
        user_id: Numeric account id (None if the API omitted it)
        name: Display name, if set
    """
    login: str
    user_id: Optional[int] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class Branch:
    """A branch ref and the commit it points at.

    Attributes:
        name: Branch name without the refs/heads/ prefix
        head_commit_sha: Sha of the commit the branch points at
    """
    name: str
    head_commit_sha: str


@dataclass
class FileBlob:
    """A file in the repository at some branch.

    The sha is the optimistic-concurrency token: it is present only when the
    file exists and must accompany any overwrite of that file.

    Attributes:
        path: Path relative to the repository root
        content: UTF-8 text content
        sha: Blob sha (None for a file that does not exist yet)
    """
    path: str
    content: str
    sha: Optional[str] = None


@dataclass
class BranchExistenceEntry:
    """Cached result of a branch existence check.

    Attributes:
        exists: Whether the branch existed when checked
        checked_at: Clock reading (seconds) when the check was made
    """
    exists: bool
    checked_at: float


class CancellationToken:
    """Cooperative cancellation flag shared between a caller and an operation.

    Operations call raise_if_cancelled() before every remote step, so a
    cancelled token stops the operation before its next request is issued.
    A request already in flight is bounded by the per-call timeout instead.

    Example:
        >>> token = CancellationToken()
        >>> token.cancel()
        >>> token.raise_if_cancelled("commit")
        Traceback (most recent call last):
        ...
        OperationCancelledError: Operation cancelled: commit
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, operation: str) -> None:
        if self._event.is_set():
            raise OperationCancelledError(operation)
