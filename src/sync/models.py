"""Data models for sync operations."""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass
class BatchCommitResult:
    """Outcome of committing one ChangeSet.

    Files are committed one by one, so a failure part way leaves the earlier
    files committed. Nothing is rolled back.

    Attributes:
        committed: Paths written successfully, in commit order
        failed: (path, error message) for every path that was not written
        mirrored: Development mode only: whether the best-effort remote mirror
            succeeded (None when no mirror was attempted)
    """
    committed: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)
    mirrored: Optional[bool] = None

    @property
    def success(self) -> bool:
        return not self.failed

    @property
    def failed_paths(self) -> List[str]:
        return [path for path, _ in self.failed]
