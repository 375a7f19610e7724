"""
Session guard: holds and validates the auth credential.

Every collection operation checks `is_authenticated` first and becomes a
no-op without a session.
"""
import logging
from typing import Optional

from ..exceptions import AuthError, CinemathequeError
from ..schemas import Session
from .base import AuthBackend
from .notifications import NotificationCenter
from .token_store import TokenStore

logger = logging.getLogger(__name__)


class SessionGuard:
    """
    Login state of the client.

    Args:
        backend: Auth collaborator (login / verify / logout)
        token_store: Durable cache used when "remember me" is ticked
        notifier: Channel for user-visible messages
    """

    def __init__(self, backend: AuthBackend, token_store: TokenStore, notifier: NotificationCenter):
        self.backend = backend
        self.token_store = token_store
        self.notifier = notifier
        self._session: Optional[Session] = None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def token(self) -> Optional[str]:
        return self._session.token if self._session else None

    async def restore(self) -> Optional[Session]:
        """
        Re-use a remembered token after verifying it.

        An invalid or unverifiable token is dropped silently and the client
        stays logged out.
        """
        cached = self.token_store.load()
        if cached is None:
            return None

        try:
            valid = await self.backend.verify(cached.token)
        except CinemathequeError as e:
            logger.warning(f"[Auth] Could not verify remembered token: {e}")
            valid = False

        if not valid:
            logger.info("[Auth] Remembered token rejected, starting logged out")
            self.token_store.clear()
            return None

        self._session = cached
        logger.info(f"[Auth] Session restored for {cached.username}")
        return cached

    async def authenticate(self, username: str, password: str, remember: bool = False) -> Session:
        """
        Log in with credentials.

        Returns:
            The new Session

        Raises:
            AuthError: On rejected credentials or when the backend is unreachable
        """
        try:
            response = await self.backend.login(username, password, remember)
        except CinemathequeError as e:
            logger.error(f"[Auth] Login request failed: {e}")
            self.notifier.error("Login failed. Please try again.")
            raise AuthError("Login failed. Please try again.") from e

        if not response.success or not response.token:
            message = response.message or "Login failed"
            logger.info(f"[Auth] Login rejected for {username}: {message}")
            self.notifier.error(message)
            raise AuthError(message)

        session = Session(token=response.token, username=response.username or username)
        self._session = session
        if remember:
            self.token_store.save(session)

        logger.info(f"[Auth] Logged in as {session.username}")
        self.notifier.success("Login successful!")
        return session

    async def verify(self, token: str) -> bool:
        """Ask the backend whether a token is still valid; failures count as invalid."""
        try:
            return bool(await self.backend.verify(token))
        except CinemathequeError as e:
            logger.warning(f"[Auth] Token verification failed: {e}")
            return False

    async def logout(self):
        """Log out; local state is cleared even if the backend call fails."""
        token = self.token
        try:
            if token:
                await self.backend.logout(token)
        except CinemathequeError as e:
            logger.error(f"[Auth] Logout error: {e}")
        finally:
            self._session = None
            self.token_store.clear()
            self.notifier.success("Logged out successfully")
