"""Durable cache for the "remember me" session token."""
import json
import logging
from pathlib import Path
from typing import Optional

from ..schemas import Session

logger = logging.getLogger(__name__)


class TokenStore:
    """Keeps the remembered session in a small JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Optional[Session]:
        """Read the cached session; unreadable content counts as no session."""
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return Session(token=data["token"], username=data["username"])
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"[Auth] Ignoring unreadable token cache {self.path}: {e}")
            return None

    def save(self, session: Session):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({"token": session.token, "username": session.username}, f)
        logger.debug(f"[Auth] Session remembered in {self.path}")

    def clear(self):
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
