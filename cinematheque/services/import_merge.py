"""
TMDB import engine: debounced search, detail fetch with timeout/retry and the
non-destructive merge of imported metadata into a draft.

State machine per edit session:

    IDLE -> SEARCHING -> RESULTS -> IMPORTING -> IDLE
    SEARCHING / IMPORTING -> ERROR (left by the next operation)

Every request carries a sequence number; a response is applied only if its
number is still the latest one issued.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Dict, List, Optional

from ..config import get_settings
from ..exceptions import CinemathequeError, RateLimitedError, RequestTimeoutError
from ..schemas import DetailRecord, Draft, SearchResult
from .base import MetadataProvider
from .notifications import NotificationCenter, NotificationLevel

logger = logging.getLogger(__name__)

# Scalar draft fields filled from TMDB when empty
MERGED_SCALARS = (
    "external_id",
    "overview",
    "release_date",
    "runtime_minutes",
    "poster_path",
    "backdrop_path",
    "external_rating",
    "external_vote_count",
    "director",
    "country",
    "seasons",
    "episodes",
)

# List fields taken from TMDB when the draft has none and TMDB has some
MERGED_LISTS = ("genres", "cast_list", "crew", "episode_details")

MANUAL_ENTRY_HINT = "Could not fetch details. You can still add manually."


class ImportState(str, Enum):
    """Import engine states."""
    IDLE = "idle"
    SEARCHING = "searching"
    RESULTS = "results"
    IMPORTING = "importing"
    ERROR = "error"


class OutcomeStatus(str, Enum):
    """How a search or import call ended."""
    OK = "ok"
    EMPTY = "empty"
    SUPERSEDED = "superseded"
    REJECTED = "rejected"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    FAILED = "failed"


@dataclass
class SearchOutcome:
    """Result of `ImportMergeEngine.search`."""
    status: OutcomeStatus
    results: List[SearchResult] = field(default_factory=list)
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.OK


@dataclass
class ImportOutcome:
    """
    Result of `ImportMergeEngine.select_result`.

    Attributes:
        status: OK when the merge was applied
        draft: Merged draft on success, the untouched input draft otherwise
        message: User-facing explanation on failure
    """
    status: OutcomeStatus
    draft: Draft
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.OK


# =========================================================================
# MERGE
# =========================================================================

def is_set(value: Any) -> bool:
    """A draft value counts as set unless it is None, blank text or an empty list."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, dict)):
        return len(value) > 0
    return True


def imported_fields(details: DetailRecord, cast_limit: int = 10) -> Dict[str, Any]:
    """Draft-shaped values offered by a TMDB detail record."""
    release_date = details.release_date or ""
    return {
        "external_id": details.external_id,
        "overview": details.overview,
        "release_date": release_date[:10] if release_date else None,
        "runtime_minutes": details.runtime_minutes,
        "poster_path": details.poster_path,
        "backdrop_path": details.backdrop_path,
        "external_rating": details.external_rating,
        "external_vote_count": details.external_vote_count,
        "director": details.director,
        "country": details.country,
        "seasons": details.seasons,
        "episodes": details.episodes,
        "genres": list(details.genres),
        "cast_list": [
            {"name": person.name or "", "character": person.character or ""}
            for person in details.cast_list[:cast_limit]
        ],
        "crew": [person.model_dump() for person in details.crew],
        "episode_details": [episode.model_dump() for episode in details.episode_details],
    }


def merge_details(draft: Draft, details: DetailRecord, cast_limit: int = 10) -> Draft:
    """
    Merge TMDB details into a draft without destroying manual input.

    - Every field keeps the draft value when set and adopts the imported one
      otherwise. Lists follow the same rule and are only adopted when TMDB
      supplies a non-empty list.
    - original_title takes the TMDB original title (or TMDB title) whenever TMDB
      has one.
    - title keeps what the user typed; a blank title becomes the TMDB original
      title.

    Returns:
        A new Draft; the input draft is never modified

    Raises:
        pydantic.ValidationError: If the imported data does not fit the draft
    """
    imported = imported_fields(details, cast_limit)
    updates: Dict[str, Any] = {}
    for key in MERGED_SCALARS + MERGED_LISTS:
        if not is_set(getattr(draft, key)) and is_set(imported[key]):
            updates[key] = imported[key]

    provider_original = next(
        (t for t in (details.original_title, details.title) if is_set(t)), ""
    )
    typed_title = draft.title if is_set(draft.title) else ""
    updates["title"] = typed_title or provider_original or draft.title
    updates["original_title"] = (
        provider_original
        or (draft.original_title if is_set(draft.original_title) else "")
        or typed_title
        or draft.original_title
    )

    data = draft.model_dump()
    data.update(updates)
    return Draft.model_validate(data)


# =========================================================================
# ENGINE
# =========================================================================

class ImportMergeEngine:
    """
    TMDB search/import for one edit session.

    Args:
        provider: Metadata collaborator
        notifier: Channel for user-visible messages
        debounce: Seconds a search waits before it is sent
        timeout: Seconds allowed for each network attempt
        attempts: Detail-fetch attempts (1 = no retry)
        retry_delay: Seconds between detail-fetch attempts
        cast_limit: Max imported cast entries
    """

    def __init__(
        self,
        provider: MetadataProvider,
        notifier: NotificationCenter,
        debounce: Optional[float] = None,
        timeout: Optional[float] = None,
        attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        cast_limit: Optional[int] = None
    ):
        settings = get_settings()
        self.provider = provider
        self.notifier = notifier
        self.debounce = settings.search_debounce if debounce is None else debounce
        self.timeout = settings.request_timeout if timeout is None else timeout
        self.attempts = max(1, settings.detail_fetch_attempts if attempts is None else attempts)
        self.retry_delay = settings.retry_delay if retry_delay is None else retry_delay
        self.cast_limit = settings.cast_limit if cast_limit is None else cast_limit

        self.state = ImportState.IDLE
        self.results: List[SearchResult] = []
        self.last_error: Optional[str] = None
        self._seq = 0
        self._debounce_task: Optional[asyncio.Future] = None

    @property
    def busy(self) -> bool:
        """True while a search or an import is on the network."""
        return self.state in (ImportState.SEARCHING, ImportState.IMPORTING)

    def reset(self):
        """Forget results and make every in-flight response stale."""
        self._cancel_pending()
        self._seq += 1
        self.state = ImportState.IDLE
        self.results = []
        self.last_error = None

    # -------------------------------------------------------------------------
    # SEARCH
    # -------------------------------------------------------------------------

    async def search(self, term: str, media_type: str) -> SearchOutcome:
        """
        Debounced TMDB search.

        A call arriving during the debounce wait replaces the pending one; a
        call arriving while a request is on the network is rejected.
        """
        term = (term or "").strip()
        if not term:
            message = "Please enter a title to search"
            self.notifier.error(message)
            return SearchOutcome(OutcomeStatus.REJECTED, list(self.results), message)
        if self.busy:
            logger.info("[Import] Search already in progress, ignoring")
            return SearchOutcome(OutcomeStatus.REJECTED, list(self.results), "Search already in progress")

        self._cancel_pending()
        self._seq += 1
        seq = self._seq

        self._debounce_task = asyncio.ensure_future(asyncio.sleep(self.debounce))
        try:
            await self._debounce_task
        except asyncio.CancelledError:
            if seq == self._seq:
                raise
            logger.debug(f"[Import] Search '{term}' superseded during debounce")
            return SearchOutcome(OutcomeStatus.SUPERSEDED, list(self.results))

        if seq != self._seq:
            return SearchOutcome(OutcomeStatus.SUPERSEDED, list(self.results))
        if self.busy:
            return SearchOutcome(OutcomeStatus.REJECTED, list(self.results), "Import in progress")

        logger.info(f"[Import] Searching TMDB for '{term}' ({media_type})")
        self.state = ImportState.SEARCHING
        try:
            response = await self._with_timeout(self.provider.search(term, media_type))
        except RateLimitedError:
            return self._search_failed(
                seq, OutcomeStatus.RATE_LIMITED, "Too many requests. Please wait a moment.", NotificationLevel.WARNING
            )
        except RequestTimeoutError:
            return self._search_failed(
                seq, OutcomeStatus.TIMEOUT, "Search timed out. Please try again.", NotificationLevel.ERROR
            )
        except Exception as e:
            logger.error(f"[Import] TMDB search error: {e}")
            return self._search_failed(
                seq, OutcomeStatus.FAILED, "Search failed. You can still add manually.", NotificationLevel.WARNING
            )

        if seq != self._seq:
            logger.debug(f"[Import] Dropping stale search response for '{term}'")
            return SearchOutcome(OutcomeStatus.SUPERSEDED, list(self.results))

        if response.error:
            # Previous results stay on screen
            return self._search_failed(seq, OutcomeStatus.FAILED, response.error, NotificationLevel.ERROR)

        self.results = list(response.results)
        self.last_error = None
        if not self.results:
            self.state = ImportState.IDLE
            message = "No results found. Try different keywords."
            self.notifier.info(message)
            return SearchOutcome(OutcomeStatus.EMPTY, [], message)

        self.state = ImportState.RESULTS
        self.notifier.success(f"Found {len(self.results)} results")
        return SearchOutcome(OutcomeStatus.OK, list(self.results))

    def _search_failed(
        self, seq: int, status: OutcomeStatus, message: str, level: NotificationLevel
    ) -> SearchOutcome:
        if seq != self._seq:
            return SearchOutcome(OutcomeStatus.SUPERSEDED, list(self.results))
        self.state = ImportState.ERROR
        self.last_error = message
        self.notifier.notify(message, level)
        return SearchOutcome(status, list(self.results), message)

    # -------------------------------------------------------------------------
    # IMPORT
    # -------------------------------------------------------------------------

    async def select_result(
        self, result: SearchResult, draft: Draft, media_type: Optional[str] = None
    ) -> ImportOutcome:
        """
        Fetch details for a search hit and merge them into the draft.

        The returned outcome carries either the merged draft or the untouched
        input draft; a partial merge never happens.
        """
        if self.busy:
            logger.info("[Import] Busy, ignoring selection")
            return ImportOutcome(OutcomeStatus.REJECTED, draft, "Import already in progress")

        self._cancel_pending()
        self._seq += 1
        seq = self._seq
        media_type = media_type or draft.media_type.value
        self.state = ImportState.IMPORTING
        logger.info(f"[Import] Importing TMDB {result.external_id} ({media_type})")

        try:
            details = await self._fetch_details(result.external_id, media_type)
        except RateLimitedError:
            return self._import_failed(
                seq, draft, OutcomeStatus.RATE_LIMITED, "Too many requests. Please wait."
            )
        except RequestTimeoutError:
            return self._import_failed(seq, draft, OutcomeStatus.TIMEOUT, MANUAL_ENTRY_HINT)
        except Exception as e:
            logger.error(f"[Import] Details failed for {result.external_id}: {e}")
            return self._import_failed(seq, draft, OutcomeStatus.FAILED, MANUAL_ENTRY_HINT)

        if seq != self._seq:
            return ImportOutcome(OutcomeStatus.SUPERSEDED, draft)

        if details is None:
            return self._import_failed(
                seq, draft, OutcomeStatus.FAILED, "Could not import TMDB data. You can continue manually."
            )

        try:
            merged = merge_details(draft, details, self.cast_limit)
        except Exception as e:
            logger.error(f"[Import] Merge failed for {result.external_id}: {e}")
            return self._import_failed(
                seq, draft, OutcomeStatus.FAILED, "Error importing data. Your entered information is preserved."
            )

        self.results = []
        self.last_error = None
        self.state = ImportState.IDLE
        self.notifier.success("TMDB data imported! Review and save.")
        return ImportOutcome(OutcomeStatus.OK, merged)

    def _import_failed(self, seq: int, draft: Draft, status: OutcomeStatus, message: str) -> ImportOutcome:
        if seq != self._seq:
            return ImportOutcome(OutcomeStatus.SUPERSEDED, draft)
        self.results = []
        self.state = ImportState.ERROR
        self.last_error = message
        self.notifier.warning(message)
        return ImportOutcome(status, draft, message)

    async def _fetch_details(self, external_id: int, media_type: str) -> Optional[DetailRecord]:
        """
        Fetch details, retrying failures other than rate limiting.

        Raises:
            RateLimitedError: Immediately, without retry
            Exception: The last failure once every attempt is used
        """
        last_error: Optional[BaseException] = None
        for attempt in range(1, self.attempts + 1):
            if attempt > 1:
                logger.info(f"[Import] Details retry {attempt} of {self.attempts}")
            try:
                return await self._with_timeout(self.provider.details(external_id, media_type))
            except RateLimitedError:
                raise
            except Exception as e:
                logger.warning(f"[Import] Details attempt {attempt} failed: {e}")
                last_error = e
                if attempt < self.attempts:
                    await asyncio.sleep(self.retry_delay)

        raise last_error if last_error else CinemathequeError("Unknown error after retries")

    # -------------------------------------------------------------------------
    # INTERNALS
    # -------------------------------------------------------------------------

    async def _with_timeout(self, call: Awaitable):
        """Abort a network call after `timeout` seconds."""
        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.warning(f"[Import] Request aborted after {self.timeout}s")
            raise RequestTimeoutError(self.timeout) from e

    def _cancel_pending(self):
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = None
