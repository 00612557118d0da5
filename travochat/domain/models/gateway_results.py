"""
Gateway Result Models - One explicit result type per endpoint
=============================================================
The chat service answers each endpoint with a differently shaped body
(status code at top level or absent, session nested under "data" or not).
Gateways decode those bodies into these models so callers never inspect
raw payloads.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class RegistrationResult(BaseModel):
    """Outcome of POST /register"""

    model_config = ConfigDict(frozen=True)

    accepted: bool = Field(..., description="True when the body status code signals success")
    status_code: Optional[int] = Field(default=None, description="statusCode reported in the body")
    message: str = Field(default="", description="Human-readable status message for the user")
    user_id: Optional[str] = Field(default=None)
    session_id: int = Field(default=0, description="0 when the server requires a separate activation")

    @property
    def has_session(self) -> bool:
        return self.session_id > 0


class IdentityStatus(BaseModel):
    """Outcome of POST /check"""

    model_config = ConfigDict(frozen=True)

    exists: bool = Field(..., description="Email maps to an existing user")
    user_id: Optional[str] = Field(default=None)
    session_id: int = Field(default=0, description="Current session, 0 when not active")

    @property
    def has_session(self) -> bool:
        return self.session_id > 0


class SessionActivationResult(BaseModel):
    """Outcome of POST /start"""

    model_config = ConfigDict(frozen=True)

    session_id: int = Field(..., description="Activated session id")
    user_id: str = Field(..., description="User the session belongs to")
    status_code: Optional[int] = Field(default=None)

    @property
    def is_active(self) -> bool:
        return self.session_id > 0
