"""
Edit session: one add/edit form with its draft and its own import engine.
"""
import logging
from typing import Optional

from ..exceptions import CinemathequeError, ValidationError
from ..schemas import Draft, MediaRecord, SearchResult
from .base import MediaId
from .import_merge import ImportMergeEngine, ImportOutcome, SearchOutcome
from .media_store import RemoteMediaStore
from .normalizer import normalize, validate_draft
from .notifications import NotificationCenter

logger = logging.getLogger(__name__)


class EditSession:
    """
    Owns a Draft from the moment a form opens until it is saved or cancelled.

    A failed save keeps the session open with the draft intact so the user can
    try again.
    """

    def __init__(
        self,
        store: RemoteMediaStore,
        engine: ImportMergeEngine,
        notifier: NotificationCenter,
        draft: Draft,
        record_id: Optional[MediaId] = None
    ):
        self.store = store
        self.engine = engine
        self.notifier = notifier
        self.draft = draft
        self.record_id = record_id if record_id is not None else draft.id
        self.closed = False

    @property
    def is_new(self) -> bool:
        return self.record_id is None

    def update_draft(self, **fields) -> Draft:
        """Apply form input; values are re-validated against the Draft model."""
        data = self.draft.model_dump()
        data.update(fields)
        self.draft = Draft.model_validate(data)
        return self.draft

    async def search(self, term: Optional[str] = None) -> SearchOutcome:
        """Search TMDB for `term`, or for the title typed so far."""
        term = self.draft.title if term is None else term
        return await self.engine.search(term, self.draft.media_type.value)

    async def select_result(self, result: SearchResult) -> ImportOutcome:
        outcome = await self.engine.select_result(result, self.draft)
        if outcome.ok and not self.closed:
            self.draft = outcome.draft
        return outcome

    async def submit(self) -> Optional[MediaRecord]:
        """
        Validate, normalize and persist the draft.

        Returns:
            The saved record, or None if nothing was saved
        """
        if self.closed:
            logger.warning("[Edit] Submit on a closed session ignored")
            return None
        try:
            validate_draft(self.draft)
            wire = normalize(self.draft)
        except ValidationError as e:
            self.notifier.error(e.message)
            return None

        try:
            if self.is_new:
                saved = await self.store.create(wire)
            else:
                saved = await self.store.update(self.record_id, wire)
        except CinemathequeError as e:
            logger.info(f"[Edit] Save failed, draft kept: {e}")
            return None

        if saved is None:
            return None
        self._close()
        return saved

    def cancel(self):
        """Discard the draft."""
        self._close()

    def _close(self):
        self.closed = True
        self.engine.reset()
