"""
Remote media store: the client-side cache of the backend collection.

The store is the only writer of the record snapshot and the stats; readers
get an immutable tuple. Silent reloads never touch the loading flag and never
surface errors; visible reloads notify on failure.
"""
import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Union

from ..config import get_settings
from ..exceptions import CinemathequeError, NotFoundError, RateLimitedError
from ..schemas import ALL, AggregateStats, Filter, MediaRecord, WireRecord
from .base import CollectionBackend, MediaId
from .normalizer import SERVER_SET_KEYS
from .notifications import NotificationCenter
from .session_guard import SessionGuard

logger = logging.getLogger(__name__)

Confirm = Callable[[MediaId], Union[bool, Awaitable[bool]]]


def build_query_params(flt: Filter) -> Dict[str, Any]:
    """
    Translate a filter into /media query parameters.

    "all" dimensions are omitted, `seen` becomes a boolean and the other
    values pass through verbatim.
    """
    params: Dict[str, Any] = {}
    if flt.media_type != ALL:
        params["media_type"] = flt.media_type
    if flt.seen != ALL:
        params["seen"] = flt.seen == "seen"
    if flt.backed_up != ALL:
        params["backed_up"] = flt.backed_up
    if flt.quality != ALL:
        params["quality"] = flt.quality
    if flt.search_text.strip():
        params["search"] = flt.search_text.strip()
    return params


class RemoteMediaStore:
    """
    Fetch, create, update and delete collection records.

    Args:
        backend: Collection collaborator
        guard: Session guard; every call is a no-op while logged out
        notifier: Channel for user-visible messages
        refresh_delay: Pause between an acknowledged mutation and its refresh
    """

    def __init__(
        self,
        backend: CollectionBackend,
        guard: SessionGuard,
        notifier: NotificationCenter,
        refresh_delay: Optional[float] = None
    ):
        self.backend = backend
        self.guard = guard
        self.notifier = notifier
        self.refresh_delay = get_settings().refresh_delay if refresh_delay is None else refresh_delay
        self.filter = Filter()
        self._records: Tuple[MediaRecord, ...] = ()
        self._stats: Optional[AggregateStats] = None
        self._visible_calls = 0
        self._list_seq = 0

    @property
    def records(self) -> Tuple[MediaRecord, ...]:
        """Current snapshot of the collection."""
        return self._records

    @property
    def stats(self) -> Optional[AggregateStats]:
        return self._stats

    @property
    def loading(self) -> bool:
        """True while a user-visible fetch is running."""
        return self._visible_calls > 0

    def clear(self):
        """Drop the cached collection (logout)."""
        self._list_seq += 1
        self._records = ()
        self._stats = None
        self.filter = Filter()

    def get(self, media_id: MediaId) -> Optional[MediaRecord]:
        for record in self._records:
            if record.id == media_id:
                return record
        return None

    # =========================================================================
    # READS
    # =========================================================================

    async def list_media(self, flt: Optional[Filter] = None, *, silent: bool = False) -> Tuple[MediaRecord, ...]:
        """
        Reload the record list for a filter (the current one by default).

        Returns:
            The snapshot after the call; the previous one on failure
        """
        if not self.guard.is_authenticated:
            logger.debug("[Store] list skipped: not authenticated")
            return self._records
        if flt is not None:
            self.filter = flt

        self._list_seq += 1
        seq = self._list_seq
        params = build_query_params(self.filter)

        records = await self._fetch(
            lambda: self.backend.list_media(params),
            silent=silent,
            failure_message="Failed to fetch media"
        )
        if records is None:
            return self._records
        if seq != self._list_seq:
            logger.debug(f"[Store] Dropping outdated list response #{seq}")
            return self._records

        self._records = tuple(records)
        logger.info(f"[Store] Loaded {len(self._records)} records (silent={silent})")
        return self._records

    async def get_stats(self, *, silent: bool = False) -> Optional[AggregateStats]:
        if not self.guard.is_authenticated:
            logger.debug("[Store] stats skipped: not authenticated")
            return self._stats

        stats = await self._fetch(
            self.backend.get_stats,
            silent=silent,
            failure_message="Failed to fetch stats"
        )
        if stats is not None:
            self._stats = stats
        return self._stats

    async def refresh(self):
        """Visible reload of list and stats."""
        await self._refresh_pair(silent=False)

    async def refresh_silent(self):
        """Background reload of list and stats; failures only reach the log."""
        await self._refresh_pair(silent=True)

    async def _refresh_pair(self, silent: bool):
        results = await asyncio.gather(
            self.list_media(silent=silent),
            self.get_stats(silent=silent),
            return_exceptions=True
        )
        for result in results:
            if isinstance(result, BaseException):
                logger.error(f"[Store] Refresh error: {result}")

    async def _fetch(self, call: Callable[[], Awaitable[Any]], *, silent: bool, failure_message: str):
        """Shared fetch used by visible and silent reads; returns None on failure."""
        if not silent:
            self._visible_calls += 1
        try:
            return await call()
        except CinemathequeError as e:
            if silent:
                logger.warning(f"[Store] Silent refresh failed, keeping stale data: {e}")
            else:
                logger.error(f"[Store] {failure_message}: {e}")
                self.notifier.error(failure_message)
            return None
        finally:
            if not silent:
                self._visible_calls -= 1

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def create(self, record: WireRecord) -> Optional[MediaRecord]:
        """
        Create a record, then refresh list and stats.

        Raises:
            CinemathequeError: After surfacing it, so the caller can retry
        """
        if not self.guard.is_authenticated:
            logger.warning("[Store] create skipped: not authenticated")
            return None
        try:
            created = await self.backend.create_media(record)
        except CinemathequeError as e:
            await self._surface(e, "Failed to save media")
            raise

        logger.info(f"[Store] Created media {created.id} ({created.title})")
        self.notifier.success("Media added successfully")
        await self._refresh_after_mutation()
        return created

    async def update(self, media_id: MediaId, record: WireRecord) -> Optional[MediaRecord]:
        """
        Replace a record, then refresh list and stats.

        Raises:
            CinemathequeError: After surfacing it (NotFoundError for a stale id)
        """
        if not self.guard.is_authenticated:
            logger.warning("[Store] update skipped: not authenticated")
            return None
        try:
            updated = await self.backend.update_media(media_id, record)
        except CinemathequeError as e:
            await self._surface(e, "Failed to save media")
            raise

        logger.info(f"[Store] Updated media {media_id}")
        self.notifier.success("Media updated successfully")
        await self._refresh_after_mutation()
        return updated

    async def delete(self, media_id: MediaId, confirm: Confirm) -> bool:
        """
        Delete a record once the user confirmed.

        Args:
            media_id: Record to delete
            confirm: Sync or async callable asked before any network call

        Returns:
            True if deleted, False if the confirmation was declined

        Raises:
            CinemathequeError: After surfacing it
        """
        if not self.guard.is_authenticated:
            logger.warning("[Store] delete skipped: not authenticated")
            return False

        approved = confirm(media_id)
        if inspect.isawaitable(approved):
            approved = await approved
        if not approved:
            logger.debug(f"[Store] Delete of {media_id} declined")
            return False

        try:
            await self.backend.delete_media(media_id)
        except CinemathequeError as e:
            await self._surface(e, "Failed to delete media")
            raise

        logger.info(f"[Store] Deleted media {media_id}")
        self.notifier.success("Media deleted successfully")
        await self._refresh_after_mutation()
        return True

    async def toggle_seen(self, record: MediaRecord) -> Optional[MediaRecord]:
        """Flip the seen flag. Returns the saved record, None on failure."""
        updated = record.model_copy(update={"seen": not record.seen})
        return await self._quick_update(updated, "Updated successfully")

    async def toggle_backup(self, record: MediaRecord) -> Optional[MediaRecord]:
        """Advance backed_up: not_backed_up -> backed_up -> pending -> not_backed_up."""
        updated = record.model_copy(update={"backed_up": record.backed_up.next()})
        return await self._quick_update(updated, "Backup status updated")

    async def _quick_update(self, updated: MediaRecord, message: str) -> Optional[MediaRecord]:
        """Full update carrying the rest of the record as fetched (cast photos and
        cast_names included), then a silent list reload."""
        if not self.guard.is_authenticated:
            logger.warning("[Store] toggle skipped: not authenticated")
            return None
        try:
            wire = WireRecord.model_validate(updated.model_dump(exclude=set(SERVER_SET_KEYS)))
            saved = await self.backend.update_media(updated.id, wire)
        except CinemathequeError as e:
            await self._surface(e, "Failed to update")
            return None

        await self.list_media(silent=True)
        self.notifier.success(message)
        return saved

    async def _refresh_after_mutation(self):
        if self.refresh_delay > 0:
            await asyncio.sleep(self.refresh_delay)
        await self.refresh_silent()

    async def _surface(self, error: CinemathequeError, default_message: str):
        """Tell the user about a failed action."""
        logger.error(f"[Store] {default_message}: {error}")
        if isinstance(error, NotFoundError):
            self.notifier.error("This item no longer exists in the collection")
            await self.refresh_silent()
        elif isinstance(error, RateLimitedError):
            self.notifier.warning(error.message)
        else:
            self.notifier.error(error.message or default_message)
