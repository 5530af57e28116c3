"""Typed exception hierarchy for hosting-API errors.

This module defines all custom exceptions raised by the hosting client.
All exceptions inherit from the SyncError base class for easy catching and
include descriptive messages with context to help with debugging.

A 404 from the hosting API is never an exception: operations that can observe
absence return None instead.
"""

from typing import Optional


class SyncError(Exception):
    """Base exception for all cms-content-sync errors.

    Use this to catch any application-level error from the sync engine.
    """
    pass


class HostingError(SyncError):
    """Base exception for all hosting-API errors."""
    pass


class InvalidCredentialsError(HostingError):
    """Raised when the bearer credential is missing, invalid or lacks access.

    Not retryable without a new credential.
    """

    def __init__(self, endpoint: str, reason: Optional[str] = None):
        message = f"Credential rejected by hosting API (endpoint: {endpoint})"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.endpoint = endpoint
        self.reason = reason


class ConflictError(HostingError):
    """Raised when a write is rejected because the file sha is stale.

    The caller must re-read the file and retry with the fresh sha.
    """

    def __init__(self, path: str, branch: str):
        super().__init__(
            f"Someone else edited {path} on branch '{branch}'. "
            f"Reload the latest version and retry."
        )
        self.path = path
        self.branch = branch


class MergeConflictError(HostingError):
    """Raised when the hosting API cannot merge two branches automatically."""

    def __init__(self, head: str, base: str):
        super().__init__(
            f"Cannot merge '{head}' into '{base}' automatically: "
            f"resolve the conflict in the repository and publish again"
        )
        self.head = head
        self.base = base


class APIUnreachableError(HostingError):
    """Raised on network failure or timeout. Retryable by the caller."""

    def __init__(self, endpoint: str):
        super().__init__(f"API is not available at {endpoint}")
        self.endpoint = endpoint


class APIAccessError(HostingError):
    """Raised for non-2xx responses that have no more specific meaning."""

    def __init__(
        self,
        message: str = "Hosting API failure (after 3 retries)",
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.status_code = status_code


class ContentDecodeError(HostingError):
    """Raised when a file exists but its content is not valid UTF-8 JSON.

    Distinct from absence: an unreadable document is fatal, a missing one
    is not.
    """

    def __init__(self, path: str, branch: str, reason: str):
        super().__init__(f"Content of {path}@{branch} could not be decoded: {reason}")
        self.path = path
        self.branch = branch
        self.reason = reason


class OperationCancelledError(SyncError):
    """Raised when a CancellationToken is cancelled between remote steps."""

    def __init__(self, operation: str):
        super().__init__(f"Operation cancelled: {operation}")
        self.operation = operation
