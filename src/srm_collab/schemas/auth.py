"""Identity Pydantic schemas."""
from __future__ import annotations

from pydantic import BaseModel

from .profile import ProfileRecord


class IdentityResponse(BaseModel):
    """Signed-in user and whether their profile setup is finished."""

    user_id: str
    email: str | None = None
    profile_complete: bool
    profile: ProfileRecord | None = None


class SignOutResponse(BaseModel):
    """Result of ending the caller's session."""

    signed_out: bool
