"""Tagged read result data model."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ReadStatus(Enum):
    """Outcome of a read that may legitimately find nothing."""

    FOUND = "found"
    NOT_FOUND = "not_found"  # Absent: treat as empty
    FAILED = "failed"  # I/O or transport failure: may be retried
    CORRUPTED = "corrupted"  # Present but unreadable


@dataclass(frozen=True)
class ReadResult:
    """Result of reading a document from a cache or a storage backend.

    Distinguishes "not found" from "failed" from "corrupted" so callers can
    choose between treating the read as absent and retrying.

    Attributes:
        status: Read outcome
        value: The document when status is FOUND, otherwise None
        error: Description of the failure for FAILED and CORRUPTED

    Example:
        >>> result = ReadResult.found({"components": []})
        >>> result.value_or_none()
        {'components': []}
    """
    status: ReadStatus
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def found(cls, value: Any) -> 'ReadResult':
        return cls(ReadStatus.FOUND, value=value)

    @classmethod
    def not_found(cls) -> 'ReadResult':
        return cls(ReadStatus.NOT_FOUND)

    @classmethod
    def failed(cls, error: str) -> 'ReadResult':
        return cls(ReadStatus.FAILED, error=error)

    @classmethod
    def corrupted(cls, error: str) -> 'ReadResult':
        return cls(ReadStatus.CORRUPTED, error=error)

    @property
    def is_found(self) -> bool:
        return self.status is ReadStatus.FOUND

    def value_or_none(self) -> Any:
        return self.value if self.status is ReadStatus.FOUND else None
