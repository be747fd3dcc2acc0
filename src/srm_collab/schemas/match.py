"""Match, deck and chat Pydantic schemas."""
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .profile import AuthorSummary, ProfileRecord


class MatchRecord(BaseModel):
    """Row of the ``matches`` collection: a swipe-right edge."""

    id: str
    user_id: str
    matched_user_id: str
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    def participants(self) -> tuple[str, str]:
        return self.user_id, self.matched_user_id


class MatchView(MatchRecord):
    """Match joined with the matched user's profile."""

    matched_user: AuthorSummary
    profile: ProfileRecord | None = None


class MessageRecord(BaseModel):
    """Row of the ``messages`` collection."""

    id: str
    match_id: str
    sender_id: str
    receiver_id: str
    content: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, extra="ignore")


class MessageCreate(BaseModel):
    """Schema for sending a chat message."""

    content: str = Field(..., min_length=1, max_length=2000, description="Message text")


class SwipeRequest(BaseModel):
    """Swipe on the current candidate of the deck."""

    direction: Literal["left", "right"]


class DeckResponse(BaseModel):
    """State of the caller's candidate deck."""

    current: ProfileRecord | None
    remaining: int
    exhausted: bool


class SwipeResponse(BaseModel):
    """Outcome of a swipe and the deck after it."""

    outcome: Literal["skipped", "matched"]
    candidate_user_id: str
    match: MatchRecord | None = None
    deck: DeckResponse


class ChatView(BaseModel):
    """Chat transcript for one match."""

    match: MatchRecord
    peer: AuthorSummary
    messages: list[MessageRecord]
