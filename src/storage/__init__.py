"""Storage backends and the development/production mode router."""

from src.storage.backend import StorageBackend
from src.storage.config_loader import DEFAULT_CONFIG_PATH, ConfigLoader
from src.storage.errors import (
    ConfigError,
    DocumentCorruptedError,
    FilesystemError,
    InvalidPageIdError,
    StorageError,
)
from src.storage.local_backend import LocalBackend
from src.storage.models import RepositoryConfig, SaveResult, StorageMode, SyncConfig
from src.storage.remote_backend import RemoteBackend
from src.storage.storage_adapter import (
    StorageAdapter,
    build_hosting_client,
    build_storage_adapter,
)

__all__ = [
    'StorageBackend',
    'DEFAULT_CONFIG_PATH',
    'ConfigLoader',
    'ConfigError',
    'DocumentCorruptedError',
    'FilesystemError',
    'InvalidPageIdError',
    'StorageError',
    'LocalBackend',
    'RepositoryConfig',
    'SaveResult',
    'StorageMode',
    'SyncConfig',
    'RemoteBackend',
    'StorageAdapter',
    'build_hosting_client',
    'build_storage_adapter',
]
