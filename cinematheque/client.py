"""
Cinémathèque client facade.

Wires the settings, the HTTP transport, the session guard, the media store and
the view state together, and hands out one edit session at a time.
"""
import logging
from typing import Optional, Tuple, Union

from .config import Settings, get_settings
from .logging_config import setup_logging
from .schemas import CollectionView, Draft, MediaRecord, MediaType, Session, SortKey, ViewState
from .services.api_client import CinemathequeAPI
from .services.base import MediaId
from .services.edit_session import EditSession
from .services.export import default_export_filename, export_csv
from .services.import_merge import ImportMergeEngine
from .services.media_store import Confirm, RemoteMediaStore
from .services.notifications import NotificationCenter
from .services.session_guard import SessionGuard
from .services.token_store import TokenStore
from .services.view_pipeline import check_page_size, derive

logger = logging.getLogger(__name__)


class CinemathequeClient:
    """
    Library entry point.

    Usage:
        async with create_client() as client:
            await client.login("admin", "secret", remember=True)
            page = await client.set_filter(media_type="movie")
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        api: Optional[CinemathequeAPI] = None,
        token_store: Optional[TokenStore] = None,
        notifier: Optional[NotificationCenter] = None
    ):
        self.settings = settings or get_settings()
        self.notifier = notifier or NotificationCenter(duration=self.settings.notification_duration)
        self.api = api or CinemathequeAPI(
            base_url=self.settings.api_base_url,
            timeout=self.settings.request_timeout,
            token_provider=lambda: self.guard.token
        )
        self.guard = SessionGuard(
            self.api,
            token_store or TokenStore(self.settings.token_cache_path),
            self.notifier
        )
        self.store = RemoteMediaStore(
            self.api, self.guard, self.notifier, refresh_delay=self.settings.refresh_delay
        )
        self.view = ViewState(page_size=self.settings.default_page_size)
        self.edit_session: Optional[EditSession] = None

    async def __aenter__(self) -> "CinemathequeClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    # =========================================================================
    # SESSION
    # =========================================================================

    async def start(self) -> Optional[Session]:
        """Restore a remembered session and load the collection if it is valid."""
        session = await self.guard.restore()
        if session:
            await self.store.refresh()
        return session

    async def login(self, username: str, password: str, remember: bool = False) -> Session:
        """
        Raises:
            AuthError: If the login is rejected (already notified)
        """
        session = await self.guard.authenticate(username, password, remember)
        await self.store.refresh()
        return session

    async def logout(self):
        self._cancel_edit()
        await self.guard.logout()
        self.store.clear()
        self.view = ViewState(page_size=self.settings.default_page_size)

    async def close(self):
        self._cancel_edit()
        await self.api.close()

    # =========================================================================
    # VIEW
    # =========================================================================

    def current_view(self) -> CollectionView:
        """Derive the page on screen; an out-of-range page is clamped and kept."""
        view = derive(self.store.records, self.view)
        if view.page != self.view.page:
            self.view = self.view.with_page(view.page)
        return view

    async def set_filter(self, **changes) -> CollectionView:
        """Change filter dimensions (media_type, seen, backed_up, quality)."""
        self.view = self.view.with_filter(**changes)
        await self.store.list_media(self.view.filter)
        return self.current_view()

    async def set_search_text(self, text: str) -> CollectionView:
        self.view = self.view.with_search_text(text)
        await self.store.list_media(self.view.filter)
        return self.current_view()

    def set_sort(self, sort_key: Union[SortKey, str]) -> CollectionView:
        self.view = self.view.with_sort(sort_key)
        return self.current_view()

    def set_page(self, page: int) -> CollectionView:
        self.view = self.view.with_page(page)
        return self.current_view()

    def set_page_size(self, page_size: int) -> CollectionView:
        """
        Raises:
            ValidationError: If page_size is not 20, 50 or 100
        """
        self.view = self.view.with_page_size(check_page_size(page_size))
        return self.current_view()

    def export_csv(self) -> Tuple[str, str]:
        """Filtered and sorted collection as CSV. Returns (filename, text)."""
        return default_export_filename(), export_csv(self.store.records, self.view)

    # =========================================================================
    # EDITING
    # =========================================================================

    def begin_add(self, media_type: Union[MediaType, str] = MediaType.MOVIE) -> EditSession:
        return self._open_edit(Draft.blank(media_type))

    def begin_edit(self, record: MediaRecord) -> EditSession:
        return self._open_edit(Draft.from_record(record), record.id)

    async def delete(self, media_id: MediaId, confirm: Confirm) -> bool:
        return await self.store.delete(media_id, confirm)

    async def toggle_seen(self, record: MediaRecord) -> Optional[MediaRecord]:
        return await self.store.toggle_seen(record)

    async def toggle_backup(self, record: MediaRecord) -> Optional[MediaRecord]:
        return await self.store.toggle_backup(record)

    def _open_edit(self, draft: Draft, record_id: Optional[MediaId] = None) -> EditSession:
        self._cancel_edit()
        engine = ImportMergeEngine(
            self.api,
            self.notifier,
            debounce=self.settings.search_debounce,
            timeout=self.settings.request_timeout,
            attempts=self.settings.detail_fetch_attempts,
            retry_delay=self.settings.retry_delay,
            cast_limit=self.settings.cast_limit
        )
        self.edit_session = EditSession(self.store, engine, self.notifier, draft, record_id)
        return self.edit_session

    def _cancel_edit(self):
        if self.edit_session and not self.edit_session.closed:
            logger.debug("[Client] Discarding open edit session")
            self.edit_session.cancel()
        self.edit_session = None


def create_client(settings: Optional[Settings] = None) -> CinemathequeClient:
    """Configure logging from settings and build a client."""
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_dir)
    return CinemathequeClient(settings)
