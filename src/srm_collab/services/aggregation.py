"""Client-side joins between collections and derived feed views.

Posts, comments, polls and matches only store a user id. Authors are attached
by collecting the distinct ids of a result set and fetching their profiles in
one batched query, never one lookup per row.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timedelta

from srm_collab.backend.base import (
    Backend,
    Filter,
    Order,
    Query,
    Record,
    contains,
    eq,
    gte,
    in_,
    not_in,
)
from srm_collab.core.errors import BackendError
from srm_collab.core.settings import settings
from srm_collab.db.time import utcnow
from srm_collab.schemas import (
    UNKNOWN_USER_NAME,
    AuthorSummary,
    CommentView,
    MatchView,
    PollView,
    PostView,
    ProfileCriteria,
    ProfileFacets,
    ProfileRecord,
)

logger = logging.getLogger(__name__)

UNKNOWN_USER = UNKNOWN_USER_NAME

NEWEST_FIRST = (Order("created_at", descending=True),)
OLDEST_FIRST = (Order("created_at"),)

ProfileMap = Mapping[str, ProfileRecord]


def distinct_ids(rows: Iterable[Record], column: str) -> list[str]:
    """Referenced ids in first-seen order, without duplicates or blanks."""
    return list(dict.fromkeys(row[column] for row in rows if row.get(column)))


async def fetch_profiles_by_id(
    backend: Backend,
    user_ids: Iterable[str],
) -> dict[str, ProfileRecord]:
    """Fetch the profiles of ``user_ids`` in a single query.

    No query is issued for an empty id set. A failed lookup is logged and
    yields an empty mapping so callers fall back to placeholder authors.
    """
    ids = list(dict.fromkeys(uid for uid in user_ids if uid))
    if not ids:
        return {}

    try:
        rows = await backend.query(Query("profiles", (in_("user_id", ids),)))
    except BackendError as e:
        logger.warning("Profile lookup for %d users failed: %s", len(ids), e)
        return {}

    profiles = (ProfileRecord.model_validate(row) for row in rows)
    return {profile.user_id: profile for profile in profiles}


def author_for(profiles: ProfileMap, user_id: str) -> AuthorSummary:
    return AuthorSummary.from_profile(user_id, profiles.get(user_id))


async def join_posts(
    backend: Backend,
    rows: Sequence[Record],
    profiles: ProfileMap | None = None,
) -> list[PostView]:
    """Attach authors to post rows, reusing ``profiles`` when already fetched."""
    if not rows:
        return []
    if profiles is None:
        profiles = await fetch_profiles_by_id(backend, distinct_ids(rows, "user_id"))
    return [
        PostView.model_validate({**row, "author": author_for(profiles, row["user_id"])})
        for row in rows
    ]


async def load_feed(backend: Backend) -> list[PostView]:
    """All posts, newest first, with their authors."""
    rows = await backend.query(Query("posts", order=NEWEST_FIRST))
    return await join_posts(backend, rows)


async def load_trending(
    backend: Backend,
    *,
    now: datetime | None = None,
    window: timedelta | None = None,
    limit: int | None = None,
) -> list[PostView]:
    """Most liked posts created within the rolling window ending at ``now``.

    Ordered by likes, most first, then by creation time, newest first.
    """
    now = now or utcnow()
    window = window if window is not None else timedelta(hours=settings.trending_window_hours)
    limit = limit if limit is not None else settings.trending_limit
    cutoff = now - window

    rows = await backend.query(
        Query(
            "posts",
            filters=(gte("created_at", cutoff),),
            order=(Order("likes", descending=True), Order("created_at", descending=True)),
            limit=limit,
        )
    )
    posts = await join_posts(backend, rows)
    return [post for post in posts if post.created_at >= cutoff][:limit]


def criteria_filters(criteria: ProfileCriteria) -> list[Filter]:
    filters: list[Filter] = []
    if criteria.skill:
        filters.append(contains("skills", [criteria.skill]))
    if criteria.interest:
        filters.append(contains("interests", [criteria.interest]))
    if criteria.course:
        filters.append(eq("course", criteria.course))
    return filters


async def filter_profiles(
    backend: Backend,
    criteria: ProfileCriteria,
    *,
    exclude: Iterable[str] = (),
    limit: int | None = None,
) -> list[ProfileRecord]:
    """Profiles satisfying every given criterion."""
    filters = criteria_filters(criteria)
    excluded = list(exclude)
    if excluded:
        filters.append(not_in("user_id", excluded))
    rows = await backend.query(Query("profiles", tuple(filters), limit=limit))
    return [ProfileRecord.model_validate(row) for row in rows]


async def load_filtered_feed(backend: Backend, criteria: ProfileCriteria) -> list[PostView]:
    """Posts whose authors match ``criteria``, newest first.

    Profiles are queried first; posts are then fetched for the matching
    authors only and joined with the profiles already in hand.
    """
    if criteria.is_empty:
        return await load_feed(backend)

    profiles = await filter_profiles(backend, criteria)
    if not profiles:
        return []

    by_user = {profile.user_id: profile for profile in profiles}
    rows = await backend.query(
        Query("posts", (in_("user_id", list(by_user)),), order=NEWEST_FIRST)
    )
    return await join_posts(backend, rows, by_user)


def profile_facets(profiles: Iterable[ProfileRecord]) -> ProfileFacets:
    skills: set[str] = set()
    interests: set[str] = set()
    courses: set[str] = set()
    for profile in profiles:
        skills.update(profile.skills)
        interests.update(profile.interests)
        if profile.course:
            courses.add(profile.course)
    return ProfileFacets(
        skills=sorted(skills),
        interests=sorted(interests),
        courses=sorted(courses),
    )


async def load_profile_facets(backend: Backend) -> ProfileFacets:
    rows = await backend.query(Query("profiles"))
    return profile_facets(ProfileRecord.model_validate(row) for row in rows)


async def load_comments(backend: Backend, post_id: str) -> list[CommentView]:
    """Comments on a post, oldest first, with their authors."""
    rows = await backend.query(Query("comments", (eq("post_id", post_id),), OLDEST_FIRST))
    if not rows:
        return []
    profiles = await fetch_profiles_by_id(backend, distinct_ids(rows, "user_id"))
    return [
        CommentView.model_validate({**row, "author": author_for(profiles, row["user_id"])})
        for row in rows
    ]


async def join_polls(backend: Backend, rows: Sequence[Record]) -> list[PollView]:
    if not rows:
        return []
    profiles = await fetch_profiles_by_id(backend, distinct_ids(rows, "user_id"))
    return [
        PollView.model_validate({**row, "author": author_for(profiles, row["user_id"])})
        for row in rows
    ]


async def load_polls(backend: Backend) -> list[PollView]:
    """All polls, newest first, with their authors."""
    rows = await backend.query(Query("polls", order=NEWEST_FIRST))
    return await join_polls(backend, rows)


async def load_matches(backend: Backend, user_id: str) -> list[MatchView]:
    """Matches created by ``user_id``, newest first, with the matched profiles."""
    rows = await backend.query(Query("matches", (eq("user_id", user_id),), NEWEST_FIRST))
    if not rows:
        return []
    profiles = await fetch_profiles_by_id(backend, distinct_ids(rows, "matched_user_id"))
    return [
        MatchView.model_validate(
            {
                **row,
                "matched_user": author_for(profiles, row["matched_user_id"]),
                "profile": profiles.get(row["matched_user_id"]),
            }
        )
        for row in rows
    ]


__all__ = [
    "UNKNOWN_USER",
    "author_for",
    "distinct_ids",
    "fetch_profiles_by_id",
    "filter_profiles",
    "join_polls",
    "join_posts",
    "load_comments",
    "load_feed",
    "load_filtered_feed",
    "load_matches",
    "load_polls",
    "load_profile_facets",
    "load_trending",
    "profile_facets",
]
