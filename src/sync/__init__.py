"""Batch commits and cache-first loading over the storage adapter."""

from src.sync.models import BatchCommitResult
from src.sync.orchestrator import SyncOrchestrator
from src.sync.page_loader import PageLoader

__all__ = ['BatchCommitResult', 'SyncOrchestrator', 'PageLoader']
