"""
Error taxonomy shared by the client services.
"""
from typing import Optional


class CinemathequeError(Exception):
    """Base exception for client errors."""

    def __init__(self, message: str = "Unexpected error"):
        self.message = message
        super().__init__(self.message)


class AuthError(CinemathequeError):
    """Raised on invalid credentials or an expired/invalid token."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message)


class NetworkError(CinemathequeError):
    """Raised on connection failures and unexpected HTTP responses."""

    def __init__(self, message: str = "Network error", status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class RequestTimeoutError(NetworkError):
    """Raised when a request is aborted by its timeout."""

    def __init__(self, timeout: float, message: Optional[str] = None):
        self.timeout = timeout
        super().__init__(message or f"Request timed out after {timeout} seconds")


class RateLimitedError(CinemathequeError):
    """Raised when the metadata provider answers HTTP 429."""

    def __init__(self, message: str = "Too many requests. Please wait a moment."):
        super().__init__(message)


class ValidationError(CinemathequeError):
    """Raised when a draft cannot be submitted (e.g. missing title)."""

    def __init__(self, message: str = "Invalid data", field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class NotFoundError(CinemathequeError):
    """Raised when an update/delete targets an id the store no longer has."""

    def __init__(self, media_id=None, message: Optional[str] = None):
        self.media_id = media_id
        super().__init__(message or f"Media {media_id} not found")
