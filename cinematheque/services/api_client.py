"""
HTTP transport for the collection backend (auth, media CRUD, stats and the
TMDB proxy endpoints), built on httpx.
"""
import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

from ..config import get_settings
from ..exceptions import (
    AuthError,
    NetworkError,
    NotFoundError,
    RateLimitedError,
    RequestTimeoutError,
    ValidationError,
)
from ..schemas import (
    AggregateStats,
    DetailRecord,
    LoginResponse,
    MediaRecord,
    ProviderSearchResponse,
    WireRecord,
)
from .base import MediaId

logger = logging.getLogger(__name__)


class CinemathequeAPI:
    """
    Backend client implementing AuthBackend, CollectionBackend and
    MetadataProvider.

    Args:
        base_url: Backend root (defaults to settings.api_base_url)
        timeout: Per-request timeout in seconds
        token_provider: Callable returning the current bearer token, if any
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self.token_provider = token_provider
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport
            )
        return self._client

    async def close(self):
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    # =========================================================================
    # AUTH
    # =========================================================================

    async def login(self, username: str, password: str, remember: bool) -> LoginResponse:
        try:
            response = await self._request(
                "POST",
                "/auth/login",
                json={"username": username, "password": password, "remember_me": remember}
            )
        except AuthError as e:
            return LoginResponse(success=False, message=e.message)
        return self._parse(response, LoginResponse.model_validate)

    async def verify(self, token: str) -> bool:
        try:
            await self._request("GET", "/auth/verify", token=token)
        except AuthError:
            return False
        return True

    async def logout(self, token: str) -> None:
        await self._request("POST", "/auth/logout", token=token)

    # =========================================================================
    # COLLECTION
    # =========================================================================

    async def list_media(self, params: Dict[str, Any]) -> List[MediaRecord]:
        response = await self._request("GET", "/media", params=params)
        return self._parse(response, lambda data: [MediaRecord.model_validate(item) for item in data or []])

    async def get_stats(self) -> AggregateStats:
        response = await self._request("GET", "/stats")
        return self._parse(response, lambda data: AggregateStats.model_validate(data or {}))

    async def create_media(self, record: WireRecord) -> MediaRecord:
        response = await self._request("POST", "/media", json=record.to_payload())
        return self._parse(response, MediaRecord.model_validate)

    async def update_media(self, media_id: MediaId, record: WireRecord) -> MediaRecord:
        response = await self._request(
            "PUT", f"/media/{media_id}", json=record.to_payload(), media_id=media_id
        )
        return self._parse(response, MediaRecord.model_validate)

    async def delete_media(self, media_id: MediaId) -> None:
        await self._request("DELETE", f"/media/{media_id}", media_id=media_id)

    # =========================================================================
    # TMDB PROXY
    # =========================================================================

    async def search(self, query: str, media_type: str) -> ProviderSearchResponse:
        response = await self._request(
            "GET", "/tmdb/search", params={"query": query, "media_type": media_type}
        )
        return self._parse(response, lambda data: ProviderSearchResponse.model_validate(data or {}))

    async def details(self, external_id: int, media_type: str) -> Optional[DetailRecord]:
        response = await self._request(
            "GET", f"/tmdb/details/{external_id}", params={"media_type": media_type}
        )
        return self._parse(response, lambda data: DetailRecord.model_validate(data) if data else None)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
        media_id: Optional[MediaId] = None
    ) -> httpx.Response:
        """Send a request and map failures onto the client error taxonomy."""
        headers = {"Accept": "application/json"}
        token = token or (self.token_provider() if self.token_provider else None)
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self.client.request(method, path, params=params, json=json, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning(f"[API] {method} {path} timed out after {self.timeout}s")
            raise RequestTimeoutError(self.timeout) from e
        except httpx.HTTPError as e:
            logger.warning(f"[API] {method} {path} failed: {e}")
            raise NetworkError(f"Connection failed: {e}") from e

        status = response.status_code
        if status < 400:
            return response

        detail = self._error_detail(response)
        logger.warning(f"[API] {method} {path} -> HTTP {status}: {detail}")
        if status == 429:
            raise RateLimitedError()
        if status in (401, 403):
            raise AuthError(detail or "Invalid or expired session")
        if status == 404 and media_id is not None:
            raise NotFoundError(media_id)
        if status in (400, 422):
            raise ValidationError(detail or "Invalid data")
        raise NetworkError(detail or f"HTTP {status}", status_code=status)

    @staticmethod
    def _parse(response: httpx.Response, build: Callable[[Any], Any]) -> Any:
        """
        Decode a JSON body into schemas.

        Raises:
            NetworkError: If the body is not JSON or does not fit the schema
        """
        try:
            return build(response.json())
        except (ValueError, TypeError) as e:
            path = response.request.url.path
            logger.warning(f"[API] Unreadable response from {path}: {e}")
            raise NetworkError(f"Invalid response from server ({path})", status_code=response.status_code) from e

    @staticmethod
    def _error_detail(response: httpx.Response) -> Optional[str]:
        try:
            data = response.json()
        except ValueError:
            return response.text[:500] or None
        if isinstance(data, dict):
            detail = data.get("detail") or data.get("message") or data.get("error")
            return str(detail) if detail else None
        return None
