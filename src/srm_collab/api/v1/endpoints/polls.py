"""Poll endpoints."""

from fastapi import APIRouter, status

from srm_collab.schemas import PollCreate, PollView, PollVote
from srm_collab.services.polls import PollBoard, create_poll
from srm_collab.services.session import ClientSession

from ..dependencies import CurrentSessionDep, bad_request

router = APIRouter(prefix="/polls", tags=["polls"])


def _board(session: ClientSession) -> PollBoard:
    return session.view("polls", lambda: PollBoard(session))


@router.get("", response_model=list[PollView])
async def list_polls(session: CurrentSessionDep) -> list[PollView]:
    """Return all polls, newest first, with tallies."""
    return await _board(session).refresh()


@router.post("", response_model=PollView, status_code=status.HTTP_201_CREATED)
async def new_poll(payload: PollCreate, session: CurrentSessionDep) -> PollView:
    try:
        return await create_poll(session, payload.question, payload.options)
    except ValueError as err:
        raise bad_request(err) from err


@router.post("/{poll_id}/vote", response_model=PollView)
async def vote_on_poll(poll_id: str, payload: PollVote, session: CurrentSessionDep) -> PollView:
    try:
        return await _board(session).vote(poll_id, payload.option)
    except ValueError as err:
        raise bad_request(err) from err
