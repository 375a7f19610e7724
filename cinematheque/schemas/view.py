"""View state for the collection screens."""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Tuple, Union

from .media import MediaRecord

ALL = "all"


class SortKey(str, Enum):
    """Orderings offered by the sort selector."""
    TITLE = "title"
    SIZE = "size"
    DATE_ADDED = "date_added"


@dataclass(frozen=True)
class Filter:
    """
    Collection filter; every dimension is combined with AND.

    Attributes:
        media_type: "all", "movie" or "tv_series"
        seen: "all", "seen" or "unseen"
        backed_up: "all", "backed_up", "not_backed_up" or "pending"
        quality: "all" or a quality value ("SD", "HD", "FHD", "4K", "8K")
        search_text: matched case-insensitively against title, notes and location
    """
    media_type: str = ALL
    seen: str = ALL
    backed_up: str = ALL
    quality: str = ALL
    search_text: str = ""


@dataclass(frozen=True)
class ViewState:
    """
    Immutable view controls passed to the view pipeline.

    Changing the filter, the search text or the page size always goes back to
    page 1; changing the sort key or the page does not.
    """
    filter: Filter = field(default_factory=Filter)
    sort_key: SortKey = SortKey.DATE_ADDED
    page: int = 1
    page_size: int = 20

    def with_filter(self, **changes) -> "ViewState":
        return replace(self, filter=replace(self.filter, **changes), page=1)

    def with_search_text(self, text: str) -> "ViewState":
        return self.with_filter(search_text=text)

    def with_page_size(self, page_size: int) -> "ViewState":
        return replace(self, page_size=page_size, page=1)

    def with_sort(self, sort_key: Union[SortKey, str]) -> "ViewState":
        return replace(self, sort_key=SortKey(sort_key))

    def with_page(self, page: int) -> "ViewState":
        return replace(self, page=page)


@dataclass(frozen=True)
class CollectionView:
    """Derived page of the collection. Never stored."""
    items: Tuple[MediaRecord, ...]
    page: int
    page_size: int
    total_items: int
    total_pages: int
    page_numbers: List[Union[int, str]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.total_items == 0

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages
