"""
Collaborator contracts consumed by the client services.

The HTTP implementation lives in `api_client.CinemathequeAPI`; tests swap in
mocks that follow the same protocols.
"""
from typing import Any, Dict, List, Optional, Protocol, Union

from ..schemas import (
    AggregateStats,
    DetailRecord,
    LoginResponse,
    MediaRecord,
    ProviderSearchResponse,
    WireRecord,
)

MediaId = Union[int, str]


class AuthBackend(Protocol):
    """Login, token verification and logout."""

    async def login(self, username: str, password: str, remember: bool) -> LoginResponse:
        """
        Exchange credentials for a token.

        Returns:
            LoginResponse; `success` is False with a `message` on bad credentials

        Raises:
            NetworkError: If the backend cannot be reached
        """
        ...

    async def verify(self, token: str) -> bool:
        """Return True if the token is still accepted."""
        ...

    async def logout(self, token: str) -> None:
        ...


class CollectionBackend(Protocol):
    """CRUD over the remote collection plus aggregate statistics."""

    async def list_media(self, params: Dict[str, Any]) -> List[MediaRecord]:
        """
        List records matching the query parameters.

        Args:
            params: Query parameters (media_type, seen, backed_up, quality, search)
        """
        ...

    async def get_stats(self) -> AggregateStats:
        ...

    async def create_media(self, record: WireRecord) -> MediaRecord:
        ...

    async def update_media(self, media_id: MediaId, record: WireRecord) -> MediaRecord:
        """
        Replace a record.

        Raises:
            NotFoundError: If the id no longer exists
        """
        ...

    async def delete_media(self, media_id: MediaId) -> None:
        ...


class MetadataProvider(Protocol):
    """TMDB search and details."""

    async def search(self, query: str, media_type: str) -> ProviderSearchResponse:
        """
        Search TMDB.

        Raises:
            RateLimitedError: On HTTP 429
            NetworkError: On any other transport failure
        """
        ...

    async def details(self, external_id: int, media_type: str) -> Optional[DetailRecord]:
        ...
