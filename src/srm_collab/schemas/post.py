"""Post and comment Pydantic schemas."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .common import Base64Upload
from .profile import AuthorSummary


class PostRecord(BaseModel):
    """Row of the ``posts`` collection."""

    id: str
    user_id: str
    content: str
    image_url: str | None = None
    likes: int = Field(0, ge=0)
    created_at: datetime
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True, extra="ignore")


class PostView(PostRecord):
    """Post joined with its author."""

    author: AuthorSummary


class CommentRecord(BaseModel):
    """Row of the ``comments`` collection."""

    id: str
    post_id: str
    user_id: str
    content: str
    created_at: datetime
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True, extra="ignore")


class CommentView(CommentRecord):
    """Comment joined with its author."""

    author: AuthorSummary


class PostCreate(BaseModel):
    """Schema for creating a new post."""

    content: str = Field(..., min_length=1, max_length=5000, description="Post text")
    image: Base64Upload | None = Field(None, description="Optional attached image")


class CommentCreate(BaseModel):
    """Schema for adding a comment to a post."""

    content: str = Field(..., min_length=1, max_length=2000, description="Comment text")
