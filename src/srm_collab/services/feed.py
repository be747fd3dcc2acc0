"""Feed view state, likes, posts and comments."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from srm_collab.backend.base import Query, Subscription, eq
from srm_collab.core.errors import ForbiddenError, RecordNotFoundError
from srm_collab.core.settings import settings
from srm_collab.db.time import utcnow
from srm_collab.schemas import CommentView, FileUpload, PostRecord, PostView
from srm_collab.services.aggregation import (
    author_for,
    fetch_profiles_by_id,
    join_posts,
    load_feed,
)
from srm_collab.services.optimistic import run_optimistic
from srm_collab.services.realtime import refetch_on_change
from srm_collab.services.session import LIKE, ClientSession

logger = logging.getLogger(__name__)


class FeedState:
    """Posts as currently shown to one session."""

    def __init__(self, session: ClientSession) -> None:
        self.session = session
        self.posts: list[PostView] = []

    async def refresh(self) -> list[PostView]:
        self.posts = await load_feed(self.session.backend)
        return self.posts

    def find(self, post_id: str) -> PostView | None:
        return next((post for post in self.posts if post.id == post_id), None)

    async def like(self, post_id: str) -> PostView:
        """Increment a post's like counter optimistically.

        The counter shown locally moves first; the full new value is then
        written. On failure the previous value is restored exactly and the
        error propagates.

        Raises:
            DuplicateMutationError: If this session already liked the post.
            RecordNotFoundError: If the post does not exist.
        """
        post = self.find(post_id)
        if post is None:
            await self.refresh()
            post = self.find(post_id)
        if post is None:
            raise RecordNotFoundError(f"Post {post_id} not found")

        previous = post.likes

        def apply() -> Callable[[], None]:
            post.likes = previous + 1

            def revert() -> None:
                post.likes = previous

            return revert

        async def write() -> None:
            stored = await self.session.backend.update("posts", post_id, {"likes": previous + 1})
            post.likes = stored.get("likes", previous + 1)

        await run_optimistic(self.session.guard, LIKE, post_id, apply=apply, write=write)
        return post

    def has_liked(self, post_id: str) -> bool:
        return self.session.guard.is_claimed(LIKE, post_id)

    @asynccontextmanager
    async def watch(
        self,
        on_change: Callable[[list[PostView]], Awaitable[None] | None] | None = None,
    ) -> AsyncIterator[Subscription]:
        """Re-aggregate the feed whenever any post changes."""
        async with refetch_on_change(
            self.session.backend, "posts", (), self.refresh, on_change
        ) as sub:
            yield sub


async def get_post(session: ClientSession, post_id: str) -> PostRecord:
    rows = await session.backend.query(Query("posts", (eq("id", post_id),), limit=1))
    if not rows:
        raise RecordNotFoundError(f"Post {post_id} not found")
    return PostRecord.model_validate(rows[0])


async def create_post(
    session: ClientSession,
    content: str,
    image: FileUpload | None = None,
) -> PostView:
    """Publish a post, uploading its image first.

    Raises:
        ValueError: If the content is blank.
        StorageError: If the image upload fails; no post is written.
    """
    user_id = session.require_identity()
    text = content.strip()
    if not text:
        raise ValueError("Post content cannot be empty")

    image_url = None
    if image is not None:
        path = f"{user_id}/{int(utcnow().timestamp() * 1000)}.{image.extension}"
        image_url = await session.backend.upload(
            settings.post_image_bucket,
            path,
            image.data,
            content_type=image.content_type,
        )

    record = await session.backend.insert(
        "posts",
        {"user_id": user_id, "content": text, "image_url": image_url, "likes": 0},
    )
    logger.info("User %s created post %s", user_id, record["id"])
    views = await join_posts(session.backend, [record])
    return views[0]


async def delete_post(session: ClientSession, post_id: str) -> None:
    """Delete a post.

    Raises:
        RecordNotFoundError: If the post does not exist.
        ForbiddenError: If the caller is not the author.
    """
    user_id = session.require_identity()
    post = await get_post(session, post_id)
    if post.user_id != user_id:
        raise ForbiddenError("Only the author can delete this post")
    await session.backend.delete("posts", post_id)


async def add_comment(session: ClientSession, post_id: str, content: str) -> CommentView:
    user_id = session.require_identity()
    text = content.strip()
    if not text:
        raise ValueError("Comment cannot be empty")

    await get_post(session, post_id)
    record = await session.backend.insert(
        "comments",
        {"post_id": post_id, "user_id": user_id, "content": text},
    )
    profiles = await fetch_profiles_by_id(session.backend, [user_id])
    return CommentView.model_validate({**record, "author": author_for(profiles, user_id)})


__all__ = ["FeedState", "add_comment", "create_post", "delete_post", "get_post"]
