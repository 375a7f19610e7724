"""
Pytest configuration and shared fixtures.

Provides:
- Fast settings (no debounce, no refresh delay, no retry backoff)
- Notification center with a frozen clock
- Mocked backend collaborators (AsyncMock)
- Authenticated session guard and media store
- Sample records and TMDB payloads
"""
import os
import tempfile

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

# Set test environment BEFORE any package imports
os.environ["CINEMATHEQUE_SEARCH_DEBOUNCE"] = "0"
os.environ["CINEMATHEQUE_REFRESH_DELAY"] = "0"
os.environ["CINEMATHEQUE_RETRY_DELAY"] = "0"
os.environ["CINEMATHEQUE_DATA_DIR"] = tempfile.mkdtemp(prefix="cinematheque-test-")

from cinematheque.schemas import (
    AggregateStats,
    DetailRecord,
    LoginResponse,
    MediaRecord,
    ProviderSearchResponse,
    SearchResult,
    Session,
)
from cinematheque.services.media_store import RemoteMediaStore
from cinematheque.services.notifications import NotificationCenter
from cinematheque.services.session_guard import SessionGuard
from cinematheque.services.token_store import TokenStore


# =============================================================================
# NOTIFICATIONS
# =============================================================================

@pytest.fixture
def notifier():
    """Notification center whose clock never advances."""
    return NotificationCenter(duration=3.0, clock=lambda: 1000.0)


def messages(notifier):
    """Messages currently shown, oldest first."""
    return [n.message for n in notifier.active()]


# =============================================================================
# BACKEND MOCKS
# =============================================================================

@pytest.fixture
def backend():
    """Mock implementing AuthBackend, CollectionBackend and MetadataProvider."""
    mock = MagicMock()
    mock.login = AsyncMock(return_value=LoginResponse(success=True, token="tok-123", username="admin"))
    mock.verify = AsyncMock(return_value=True)
    mock.logout = AsyncMock(return_value=None)
    mock.list_media = AsyncMock(return_value=[])
    mock.get_stats = AsyncMock(return_value=AggregateStats())
    mock.create_media = AsyncMock()
    mock.update_media = AsyncMock()
    mock.delete_media = AsyncMock(return_value=None)
    mock.search = AsyncMock(return_value=ProviderSearchResponse(results=[]))
    mock.details = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def token_store(tmp_path):
    return TokenStore(tmp_path / "session.json")


@pytest.fixture
def guard(backend, token_store, notifier):
    """Logged-out session guard."""
    return SessionGuard(backend, token_store, notifier)


@pytest.fixture
def logged_in_guard(guard):
    """Session guard holding a valid session."""
    guard._session = Session(token="tok-123", username="admin")
    return guard


@pytest.fixture
def store(backend, logged_in_guard, notifier):
    """Media store bound to an authenticated guard."""
    return RemoteMediaStore(backend, logged_in_guard, notifier, refresh_delay=0)


# =============================================================================
# SAMPLE DATA
# =============================================================================

def make_record(id, title="Movie", **fields):
    """Build a MediaRecord with sensible defaults."""
    data = {"id": id, "title": title, "media_type": "movie"}
    data.update(fields)
    return MediaRecord.model_validate(data)


@pytest.fixture
def sample_records():
    """Small mixed collection."""
    return [
        make_record(
            1, "Fight Club", seen=True, backed_up="backed_up", quality="FHD",
            file_size="8.2 GB", location="Shelf A", release_date="1999-10-15",
            date_added=datetime(2024, 1, 10, tzinfo=timezone.utc), tmdb_id=550, user_rating=9
        ),
        make_record(
            2, "Amélie", seen=False, backed_up="pending", quality="HD",
            file_size="4.5 GB", notes="gift from Marie", release_date="2001-04-25",
            date_added=datetime(2024, 3, 2, tzinfo=timezone.utc)
        ),
        make_record(
            3, "Breaking Bad", media_type="tv_series", seen=True, quality="4K",
            file_size="120 GB", location="NAS", date_added=datetime(2023, 12, 1, tzinfo=timezone.utc)
        ),
        make_record(4, "Zodiac", file_size=None, date_added=None),
    ]


@pytest.fixture
def amelie_details():
    """TMDB details for Amélie."""
    return DetailRecord.model_validate({
        "tmdb_id": 194,
        "title": "Amélie",
        "original_title": "Le Fabuleux Destin d'Amélie Poulain",
        "overview": "At a tiny Parisian café...",
        "release_date": "2001-04-25",
        "runtime": 122,
        "genres": ["Comedy", "Romance"],
        "poster_path": "/poster.jpg",
        "tmdb_rating": 7.9,
        "tmdb_vote_count": 11000,
        "crew": [
            {"name": "Bruno Delbonnel", "job": "Director of Photography"},
            {"name": "Jean-Pierre Jeunet", "job": "Director"},
        ],
        "cast_list": [{"name": f"Actor {i}", "character": f"Role {i}"} for i in range(15)],
        "country": "France",
    })


@pytest.fixture
def amelie_result():
    return SearchResult.model_validate({"tmdb_id": 194, "title": "Amélie", "release_date": "2001-04-25"})
