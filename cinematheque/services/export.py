"""CSV export of the filtered, sorted collection."""
import csv
import io
import logging
from datetime import date
from typing import Any, Iterable, List, Optional, Union

from ..schemas import BackupStatus, MediaRecord, SortKey, ViewState
from .view_pipeline import export_rows, sort_records

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "tmdb_id",
    "title",
    "original_title",
    "year",
    "watched",
    "backed_up",
    "storage",
    "size",
    "quality",
    "user_rating",
]

BACKUP_LABELS = {
    BackupStatus.BACKED_UP: "Yes",
    BackupStatus.PENDING: "Pending",
    BackupStatus.NOT_BACKED_UP: "No",
}


def default_export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"cinematheque_export_{today.isoformat()}.csv"


def _row(record: MediaRecord) -> List[Any]:
    return [
        record.external_id if record.external_id is not None else "",
        record.title or "",
        record.original_title or "",
        record.year or "",
        "Yes" if record.seen else "No",
        BACKUP_LABELS[record.backed_up],
        record.location or "",
        record.file_size or "",
        record.quality.value if record.quality else "",
        record.user_rating if record.user_rating is not None else "",
    ]


def export_csv(records: Iterable[MediaRecord], order: Union[ViewState, SortKey, str] = SortKey.DATE_ADDED) -> str:
    """
    Render records as CSV text.

    Args:
        records: Collection snapshot
        order: A ViewState (filter and sort applied, no pagination) or a sort key

    Returns:
        CSV text with a header row
    """
    if isinstance(order, ViewState):
        rows = export_rows(records, order)
    else:
        rows = sort_records(records, order)

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for record in rows:
        writer.writerow(_row(record))

    logger.info(f"[Export] Exported {len(rows)} records")
    return buffer.getvalue()
