"""Draft branch manager.

This module provides the DraftBranchManager class that owns the lifecycle of
the single shared draft branch: creating it lazily, reporting whether it
holds unpublished edits, and publishing it by merge.
"""

import logging
from typing import Optional

from src.hosting_client.api_wrapper import HostingClient
from src.draft_branch.errors import NoDraftBranchError
from src.hosting_client.models import Branch, CancellationToken

logger = logging.getLogger(__name__)

DEFAULT_DRAFT_BRANCH = 'cms-draft'


class DraftBranchManager:
    """Manages the shared draft branch on top of a HostingClient.

    Every editor writes to the same branch name; there is no per-user
    namespacing, so there is at most one draft branch per repository.

    Publishing merges the draft into the default branch and leaves the draft
    branch in place, so later edits keep accumulating on it. Existence of the
    branch is the proxy for "has unpublished edits"; content is never diffed.

    Example:
        >>> manager = DraftBranchManager(client)
        >>> manager.ensure_draft_branch()
        >>> if manager.has_draft_changes():
        ...     manager.publish()
    """

    def __init__(self, client: HostingClient, branch_name: str = DEFAULT_DRAFT_BRANCH):
        """Initialize the manager.

        Args:
            client: Hosting client for the content repository
            branch_name: Name of the shared draft branch (same for every caller)
        """
        self.client = client
        self._branch_name = branch_name

    def draft_branch_name(self) -> str:
        """Return the shared draft branch name."""
        return self._branch_name

    def ensure_draft_branch(self, cancellation: Optional[CancellationToken] = None) -> Branch:
        """Create the draft branch from the default branch if it is missing."""
        return self.client.ensure_branch(self._branch_name, cancellation=cancellation)

    def has_draft_changes(self) -> bool:
        """True iff the draft branch exists."""
        return self.client.check_branch_exists(self._branch_name)

    def publish(self) -> Optional[str]:
        """Merge the draft branch into the default branch.

        A MergeConflictError from the hosting API is surfaced unchanged;
        no automatic resolution is attempted. The draft branch is not deleted.

        Returns:
            Sha of the merge commit, or None if there was nothing to merge

        Raises:
            NoDraftBranchError: If there is no draft branch
            MergeConflictError: If the branches cannot be merged automatically
        """
        if not self.client.check_branch_exists(self._branch_name):
            raise NoDraftBranchError(self._branch_name)

        default_branch = self.client.get_default_branch()
        logger.info(f"Publishing '{self._branch_name}' into '{default_branch}'")
        merge_sha = self.client.merge_branch(
            self._branch_name,
            default_branch,
            message=f"Publish changes from {self._branch_name}",
        )
        if merge_sha:
            logger.info(f"Published as {merge_sha[:8]}")
        return merge_sha
