"""Student profiles and avatars."""

from __future__ import annotations

import logging

from srm_collab.backend.base import Query, eq
from srm_collab.core.settings import settings
from srm_collab.schemas import FileUpload, ProfileRecord, ProfileUpdate
from srm_collab.services.session import ClientSession

logger = logging.getLogger(__name__)

SKILL_OPTIONS: tuple[str, ...] = (
    "JavaScript",
    "Python",
    "Java",
    "C++",
    "React",
    "Node.js",
    "Machine Learning",
    "Data Science",
    "Web Development",
    "Mobile Development",
    "UI/UX Design",
    "Project Management",
    "Marketing",
    "Content Writing",
    "Photography",
)

INTEREST_OPTIONS: tuple[str, ...] = (
    "Technology",
    "Startups",
    "Research",
    "Sports",
    "Music",
    "Art",
    "Travel",
    "Gaming",
    "Reading",
    "Coding",
    "Innovation",
    "Entrepreneurship",
    "Science",
)


def is_profile_complete(profile: ProfileRecord | None) -> bool:
    """A profile is complete once it has both a name and a course."""
    return bool(profile and profile.name and profile.course)


async def get_profile(session: ClientSession, user_id: str | None = None) -> ProfileRecord | None:
    """Return the profile of ``user_id`` (default: the session user), if any."""
    target = user_id or session.require_identity()
    rows = await session.backend.query(Query("profiles", (eq("user_id", target),), limit=1))
    return ProfileRecord.model_validate(rows[0]) if rows else None


async def save_profile(session: ClientSession, update: ProfileUpdate) -> ProfileRecord:
    """Create or replace the session user's own profile.

    Raises:
        ValueError: If the name is blank.
    """
    user_id = session.require_identity()
    name = update.name.strip()
    if not name:
        raise ValueError("Name is required")

    course = update.course.strip() if update.course else None
    record = await session.backend.upsert(
        "profiles",
        {
            "user_id": user_id,
            "name": name,
            "course": course or None,
            "skills": list(dict.fromkeys(update.skills)),
            "interests": list(dict.fromkeys(update.interests)),
        },
        on_conflict="user_id",
    )
    logger.info("Saved profile for %s", user_id)
    return ProfileRecord.model_validate(record)


async def upload_avatar(session: ClientSession, upload: FileUpload) -> ProfileRecord:
    """Store a new avatar and point the user's profile at it.

    Raises:
        StorageError: If the upload fails; the profile is left untouched.
    """
    user_id = session.require_identity()
    url = await session.backend.upload(
        settings.avatar_bucket,
        f"{user_id}/avatar.{upload.extension}",
        upload.data,
        content_type=upload.content_type,
        upsert=True,
    )
    record = await session.backend.upsert(
        "profiles",
        {"user_id": user_id, "avatar_url": url},
        on_conflict="user_id",
    )
    return ProfileRecord.model_validate(record)


__all__ = [
    "INTEREST_OPTIONS",
    "SKILL_OPTIONS",
    "get_profile",
    "is_profile_complete",
    "save_profile",
    "upload_avatar",
]
