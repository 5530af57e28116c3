"""Change set data model."""

from dataclasses import dataclass, field
from typing import Any, List, Optional

from src.models.page_info import page_file_name


@dataclass
class PageChange:
    """One page document in a change set.

    Attributes:
        id: Page id
        document: Full page document to write
    """
    id: str
    document: Any


@dataclass
class ChangeSet:
    """One logical unit of editorial work to be committed together.

    Attributes:
        pages: Page documents, at most one per page id
        globals: Global-variables document, if it changed

    Raises:
        ValueError: If two entries share a page id, or two ids share a file
    """
    pages: List[PageChange] = field(default_factory=list)
    globals: Optional[Any] = None

    def __post_init__(self):
        seen = {}
        for change in self.pages:
            file_name = page_file_name(change.id)
            if file_name in seen:
                raise ValueError(
                    f"Duplicate page id in change set: {change.id}"
                    f" (same file as {seen[file_name]})"
                )
            seen[file_name] = change.id

    @property
    def is_empty(self) -> bool:
        return not self.pages and self.globals is None

    @property
    def page_ids(self) -> List[str]:
        return [change.id for change in self.pages]
