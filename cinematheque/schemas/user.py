"""Authentication schemas."""
from typing import Optional

from pydantic import BaseModel, ConfigDict


class LoginResponse(BaseModel):
    """Answer of the backend to a login attempt."""
    success: bool = False
    token: Optional[str] = None
    username: Optional[str] = None
    message: Optional[str] = None


class Session(BaseModel):
    """Authenticated session: opaque token plus display name."""
    model_config = ConfigDict(frozen=True)

    token: str
    username: str
