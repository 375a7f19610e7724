"""
Collection view pipeline: filter -> sort -> paginate.

Everything here is a pure function of the record snapshot and a ViewState,
re-run whenever either changes.
"""
import math
import re
import unicodedata
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from ..config import PAGE_SIZE_CHOICES
from ..exceptions import ValidationError
from ..schemas import ALL, CollectionView, Filter, MediaRecord, SortKey, ViewState

_LEADING_NUMBER = re.compile(r"^\s*([-+]?\d*\.?\d+)")
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Max page numbers shown in the pagination bar
MAX_VISIBLE_PAGES = 5
ELLIPSIS = "..."


# =========================================================================
# FILTER
# =========================================================================

def matches_filter(record: MediaRecord, flt: Filter) -> bool:
    """AND of every non-"all" filter dimension plus the search text."""
    if flt.media_type != ALL and record.media_type.value != flt.media_type:
        return False
    if flt.seen != ALL and record.seen != (flt.seen == "seen"):
        return False
    if flt.backed_up != ALL and record.backed_up.value != flt.backed_up:
        return False
    if flt.quality != ALL and (record.quality.value if record.quality else None) != flt.quality:
        return False

    needle = flt.search_text.strip().lower()
    if needle:
        haystacks = (record.title, record.notes, record.location)
        if not any(needle in (text or "").lower() for text in haystacks):
            return False
    return True


def apply_filter(records: Iterable[MediaRecord], flt: Filter) -> List[MediaRecord]:
    return [record for record in records if matches_filter(record, flt)]


# =========================================================================
# SORT
# =========================================================================

def parse_size(file_size) -> float:
    """Leading number of a free-text size ("4.5 GB" -> 4.5); 0 when absent."""
    if file_size is None:
        return 0.0
    if isinstance(file_size, (int, float)):
        return float(file_size)
    match = _LEADING_NUMBER.match(str(file_size))
    if not match:
        return 0.0
    value = float(match.group(1))
    return value if math.isfinite(value) else 0.0


def _added_timestamp(record: MediaRecord) -> float:
    added = record.date_added
    if added is None:
        return _EPOCH.timestamp()
    if added.tzinfo is None:
        added = added.replace(tzinfo=timezone.utc)
    return added.timestamp()


def title_key(title: Optional[str]) -> Tuple[str, str]:
    """
    Collation key for titles: accents and case are ignored first
    ("apple" < "Émile" < "Zorro"), the raw title breaks ties.
    """
    title = title or ""
    decomposed = unicodedata.normalize("NFKD", title)
    base = "".join(c for c in decomposed if not unicodedata.combining(c))
    return base.casefold(), title


def sort_records(records: Iterable[MediaRecord], sort_key: Union[SortKey, str] = SortKey.DATE_ADDED) -> List[MediaRecord]:
    """
    Sort a copy of the records. Ties keep their incoming order.

    - title: ascending, ignoring accents and case, missing titles sort as ""
    - size: descending by the numeric part of file_size, missing as 0
    - date_added: newest first, missing timestamps as the epoch
    """
    sort_key = SortKey(sort_key)
    items = list(records)
    if sort_key == SortKey.TITLE:
        return sorted(items, key=lambda r: title_key(r.title))
    if sort_key == SortKey.SIZE:
        return sorted(items, key=lambda r: parse_size(r.file_size), reverse=True)
    return sorted(items, key=_added_timestamp, reverse=True)


# =========================================================================
# PAGINATE
# =========================================================================

def check_page_size(page_size: int) -> int:
    if page_size not in PAGE_SIZE_CHOICES:
        raise ValidationError(f"Page size must be one of {PAGE_SIZE_CHOICES}", field="page_size")
    return page_size


def total_pages(total_items: int, page_size: int) -> int:
    return math.ceil(total_items / page_size) if total_items else 0


def clamp_page(page: int, total_items: int, page_size: int) -> int:
    """Bring a page number back into [1, last page]; 1 for an empty collection."""
    last = max(1, total_pages(total_items, page_size))
    return min(max(1, page), last)


def paginate(records: Sequence[MediaRecord], page: int, page_size: int) -> Tuple[Tuple[MediaRecord, ...], int]:
    """
    Slice one page out of the records.

    Returns:
        (items, effective page) where the page has been clamped
    """
    check_page_size(page_size)
    page = clamp_page(page, len(records), page_size)
    start = (page - 1) * page_size
    return tuple(records[start:start + page_size]), page


def page_window(current: int, total: int) -> List[Union[int, str]]:
    """
    Page numbers for the pagination bar, at most five numbers with ellipses.

    e.g. current=6, total=12 -> [1, "...", 5, 6, 7, "...", 12]
    """
    if total <= MAX_VISIBLE_PAGES:
        return list(range(1, total + 1))
    if current <= 3:
        return [1, 2, 3, 4, ELLIPSIS, total]
    if current >= total - 2:
        return [1, ELLIPSIS] + list(range(total - 3, total + 1))
    return [1, ELLIPSIS, current - 1, current, current + 1, ELLIPSIS, total]


# =========================================================================
# PIPELINE
# =========================================================================

def derive(records: Iterable[MediaRecord], state: ViewState) -> CollectionView:
    """Run filter -> sort -> paginate for one render."""
    filtered = apply_filter(records, state.filter)
    ordered = sort_records(filtered, state.sort_key)
    items, page = paginate(ordered, state.page, state.page_size)
    pages = total_pages(len(ordered), state.page_size)
    return CollectionView(
        items=items,
        page=page,
        page_size=state.page_size,
        total_items=len(ordered),
        total_pages=pages,
        page_numbers=page_window(page, pages)
    )


def export_rows(records: Iterable[MediaRecord], state: ViewState) -> List[MediaRecord]:
    """Filtered and sorted records, without pagination (CSV export)."""
    return sort_records(apply_filter(records, state.filter), state.sort_key)
