"""Typed exception hierarchy for storage errors.

This module defines the exceptions raised by the storage backends, the
storage adapter and the configuration loader. All exceptions inherit from
StorageError, itself a SyncError.
"""

from typing import Optional

from src.hosting_client.errors import SyncError


class StorageError(SyncError):
    """Base exception for all storage errors."""
    pass


class FilesystemError(StorageError):
    """Raised when filesystem operations fail (read, write, permissions, etc)."""

    def __init__(self, file_path: str, operation: str, reason: Optional[str] = None):
        message = f"Filesystem operation '{operation}' failed for {file_path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.file_path = file_path
        self.operation = operation
        self.reason = reason


class DocumentCorruptedError(StorageError):
    """Raised when a stored document exists but is not valid JSON."""

    def __init__(self, file_path: str, reason: str):
        super().__init__(f"Document {file_path} is corrupted: {reason}")
        self.file_path = file_path
        self.reason = reason


class InvalidPageIdError(StorageError):
    """Raised when a page id could escape the pages directory or is malformed."""

    def __init__(self, page_id: str, reason: str):
        super().__init__(f"Invalid page id {page_id!r}: {reason}")
        self.page_id = page_id
        self.reason = reason


class ConfigError(StorageError):
    """Raised when configuration validation fails."""

    def __init__(self, message: str, config_field: Optional[str] = None):
        if config_field:
            full_message = f"Configuration error in field '{config_field}': {message}"
        else:
            full_message = f"Configuration error: {message}"
        super().__init__(full_message)
        self.config_field = config_field
        self.original_message = message
