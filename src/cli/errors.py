"""Typed exception hierarchy for CLI-related errors.

This module defines the exceptions raised by the CLI itself and the mapping
from any SyncError to a process exit code.
"""

from src.hosting_client.errors import (
    APIUnreachableError,
    ConflictError,
    InvalidCredentialsError,
    MergeConflictError,
    SyncError,
)
from src.cli.models import ExitCode


class CLIError(SyncError):
    """Base exception for all CLI-related errors."""
    pass


class ConfigNotFoundError(CLIError):
    """Raised when configuration file is not found."""

    def __init__(self, config_path: str):
        super().__init__(
            f"Configuration file not found at {config_path}"
        )
        self.config_path = config_path


class InputFileError(CLIError):
    """Raised when a document or manifest file given on the command line is unusable."""

    def __init__(self, file_path: str, reason: str):
        super().__init__(f"Cannot use {file_path}: {reason}")
        self.file_path = file_path
        self.reason = reason


def exit_code_for(error: Exception) -> ExitCode:
    """Map an exception to the exit code the CLI reports for it."""
    if isinstance(error, (ConflictError, MergeConflictError)):
        return ExitCode.CONFLICTS
    if isinstance(error, InvalidCredentialsError):
        return ExitCode.AUTH_ERROR
    if isinstance(error, APIUnreachableError):
        return ExitCode.NETWORK_ERROR
    return ExitCode.GENERAL_ERROR
