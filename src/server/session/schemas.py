from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class SessionCookie(BaseModel):
    model_config = ConfigDict(extra="allow")

    maxAge: Any = Field(default=None, description="Lifetime in milliseconds.")
    expires: Any = Field(default=None, description="Absolute cookie expiry.")


class SessionPayload(BaseModel):
    """Arbitrary session state; only ``cookie`` has a known shape."""

    model_config = ConfigDict(extra="allow")

    cookie: Optional[SessionCookie] = None


class SessionListResponse(BaseModel):
    count: int
    sessions: list[dict[str, Any]] = Field(default_factory=list)


class SuccessResponse(BaseModel):
    success: bool
