"""Hosting client library for the content repository.

This package provides Python abstractions over the git-hosting REST API:
branch refs, file reads and sha-checked writes, merges, with typed errors
and rate-limit retry.
"""

from .api_wrapper import HostingClient, sanitize_credentials
from .auth import Authenticator, Credentials
from .encoding import decode_content, encode_content
from .errors import (
    SyncError,
    HostingError,
    InvalidCredentialsError,
    ConflictError,
    MergeConflictError,
    APIUnreachableError,
    APIAccessError,
    ContentDecodeError,
    OperationCancelledError,
)
from .models import Branch, CancellationToken, FileBlob, Identity, RepositoryRef

__all__ = [
    "HostingClient",
    "sanitize_credentials",
    "Authenticator",
    "Credentials",
    "encode_content",
    "decode_content",
    "SyncError",
    "HostingError",
    "InvalidCredentialsError",
    "ConflictError",
    "MergeConflictError",
    "APIUnreachableError",
    "APIAccessError",
    "ContentDecodeError",
    "OperationCancelledError",
    "Branch",
    "CancellationToken",
    "FileBlob",
    "Identity",
    "RepositoryRef",
]
