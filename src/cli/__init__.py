"""Command-line interface for CMS content sync.

This package provides the `cms-sync` CLI tool over the storage adapter,
the batch orchestrator and the content cache, with progress indication and
exit codes per error class.
"""

from .models import ExitCode
from .errors import (
    CLIError,
    ConfigNotFoundError,
    InputFileError,
    exit_code_for,
)

__all__ = [
    'ExitCode',
    'CLIError',
    'ConfigNotFoundError',
    'InputFileError',
    'exit_code_for',
]
