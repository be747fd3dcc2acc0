"""Profile-related Pydantic schemas."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN_USER_NAME = "Unknown User"


class ProfileRecord(BaseModel):
    """Row of the ``profiles`` collection."""

    id: str | None = None
    user_id: str
    name: str | None = None
    course: str | None = None
    skills: list[str] = Field(default_factory=list)
    interests: list[str] = Field(default_factory=list)
    avatar_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    @field_validator("skills", "interests", mode="before")
    @classmethod
    def _none_as_empty(cls, value: object) -> object:
        return [] if value is None else value


class AuthorSummary(BaseModel):
    """Author fields joined onto posts, comments, polls and matches."""

    user_id: str
    name: str
    avatar_url: str | None = None

    @classmethod
    def from_profile(cls, user_id: str, profile: ProfileRecord | None) -> AuthorSummary:
        """Summarize a profile, or build the placeholder for a missing one."""
        if profile is None:
            return cls(user_id=user_id, name=UNKNOWN_USER_NAME, avatar_url=None)
        return cls(
            user_id=user_id,
            name=profile.name or UNKNOWN_USER_NAME,
            avatar_url=profile.avatar_url,
        )


class ProfileUpdate(BaseModel):
    """Schema for creating or replacing the caller's profile."""

    name: str = Field(..., min_length=1, max_length=200, description="Display name")
    course: str | None = Field(None, max_length=200, description="Course of study")
    skills: list[str] = Field(default_factory=list, description="Skill tags")
    interests: list[str] = Field(default_factory=list, description="Interest tags")


class ProfileCriteria(BaseModel):
    """Optional predicates combined with logical AND.

    Tag matches are exact and case-sensitive.
    """

    skill: str | None = None
    interest: str | None = None
    course: str | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.skill or self.interest or self.course)


class ProfileFacets(BaseModel):
    """Distinct values observed across all profiles."""

    skills: list[str] = Field(default_factory=list)
    interests: list[str] = Field(default_factory=list)
    courses: list[str] = Field(default_factory=list)


class ProfileOptions(BaseModel):
    """Catalogue of tags offered by the profile form."""

    skills: list[str]
    interests: list[str]
