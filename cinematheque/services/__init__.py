from .api_client import CinemathequeAPI
from .edit_session import EditSession
from .import_merge import ImportMergeEngine, ImportOutcome, ImportState, OutcomeStatus, SearchOutcome, merge_details
from .media_store import RemoteMediaStore
from .normalizer import normalize, validate_draft
from .notifications import Notification, NotificationCenter, NotificationLevel
from .session_guard import SessionGuard
from .token_store import TokenStore

__all__ = [
    "CinemathequeAPI",
    "EditSession",
    "ImportMergeEngine",
    "ImportOutcome",
    "ImportState",
    "OutcomeStatus",
    "SearchOutcome",
    "merge_details",
    "RemoteMediaStore",
    "normalize",
    "validate_draft",
    "Notification",
    "NotificationCenter",
    "NotificationLevel",
    "SessionGuard",
    "TokenStore"
]
