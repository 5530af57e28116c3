"""Exceptions for draft-branch operations."""

from src.hosting_client.errors import HostingError


class NoDraftBranchError(HostingError):
    """Raised when publishing while no draft branch exists."""

    def __init__(self, branch_name: str):
        super().__init__(f"No draft branch '{branch_name}' to publish")
        self.branch_name = branch_name
