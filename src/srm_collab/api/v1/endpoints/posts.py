"""Feed, post and comment endpoints."""

from fastapi import APIRouter, Response, status

from srm_collab.schemas import CommentCreate, CommentView, PostCreate, PostView
from srm_collab.services import aggregation
from srm_collab.services.feed import FeedState, add_comment, create_post, delete_post, get_post
from srm_collab.services.session import ClientSession

from ..dependencies import CriteriaDep, CurrentSessionDep, bad_request

router = APIRouter(prefix="/posts", tags=["posts"])


def _feed(session: ClientSession) -> FeedState:
    return session.view("feed", lambda: FeedState(session))


@router.get("", response_model=list[PostView])
async def list_posts(session: CurrentSessionDep, criteria: CriteriaDep) -> list[PostView]:
    """Return the feed, newest first, optionally narrowed to matching authors."""
    if criteria.is_empty:
        return await _feed(session).refresh()
    return await aggregation.load_filtered_feed(session.backend, criteria)


@router.get("/trending", response_model=list[PostView])
async def trending_posts(session: CurrentSessionDep) -> list[PostView]:
    """Return the most liked posts of the last day."""
    return await aggregation.load_trending(session.backend)


@router.post("", response_model=PostView, status_code=status.HTTP_201_CREATED)
async def publish_post(payload: PostCreate, session: CurrentSessionDep) -> PostView:
    try:
        image = payload.image.decode() if payload.image else None
        return await create_post(session, payload.content, image)
    except ValueError as err:
        raise bad_request(err) from err


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_post(post_id: str, session: CurrentSessionDep) -> Response:
    await delete_post(session, post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{post_id}/like", response_model=PostView)
async def like_post(post_id: str, session: CurrentSessionDep) -> PostView:
    """Add the caller's like to a post. A second like in the same session is rejected."""
    return await _feed(session).like(post_id)


@router.get("/{post_id}/comments", response_model=list[CommentView])
async def list_comments(post_id: str, session: CurrentSessionDep) -> list[CommentView]:
    await get_post(session, post_id)
    return await aggregation.load_comments(session.backend, post_id)


@router.post(
    "/{post_id}/comments",
    response_model=CommentView,
    status_code=status.HTTP_201_CREATED,
)
async def comment_on_post(
    post_id: str,
    payload: CommentCreate,
    session: CurrentSessionDep,
) -> CommentView:
    try:
        return await add_comment(session, post_id, payload.content)
    except ValueError as err:
        raise bad_request(err) from err


__all__ = ["router"]
