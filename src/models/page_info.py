"""Page listing data model."""

from dataclasses import asdict, dataclass
from typing import Any, Dict

REQUIRED_PAGE_INFO_FIELDS = ('id', 'name', 'path')

# Page ids that are stored under a different file name
PAGE_FILE_ALIASES = {'home': 'index'}


def page_file_name(page_id: str) -> str:
    """File name (without extension) a page id is stored under."""
    return PAGE_FILE_ALIASES.get(page_id, page_id)


@dataclass(frozen=True)
class PageInfo:
    """An editable page as shown in the page list.

    Attributes:
        id: Page id (file name without extension, e.g. "index", "about-us")
        name: Display name ("Home" for index, otherwise title-cased id)
        path: Site path ("/" for index, otherwise "/<id>")
    """
    id: str
    name: str
    path: str

    @classmethod
    def from_page_id(cls, page_id: str) -> 'PageInfo':
        """Derive display name and site path from a page id."""
        if page_id == 'index':
            return cls(id=page_id, name='Home', path='/')
        words = [w for w in page_id.replace('_', '-').split('-') if w]
        name = ' '.join(w[:1].upper() + w[1:] for w in words) or page_id
        return cls(id=page_id, name=name, path=f"/{page_id}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PageInfo':
        return cls(id=data['id'], name=data['name'], path=data['path'])

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def is_valid_page_info(item: Any) -> bool:
    """Structural check for one serialized PageInfo element."""
    return isinstance(item, dict) and all(
        isinstance(item.get(field), str) for field in REQUIRED_PAGE_INFO_FIELDS
    )
