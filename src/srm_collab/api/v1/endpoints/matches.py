"""Matching deck, match list and chat endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from srm_collab.core.errors import BackendError
from srm_collab.schemas import (
    ChatView,
    DeckResponse,
    ErrorResponse,
    MatchView,
    MessageCreate,
    MessageRecord,
    SwipeRequest,
    SwipeResponse,
)
from srm_collab.services import aggregation
from srm_collab.services.chat import ChatRoom
from srm_collab.services.matching import MatchDeck
from srm_collab.services.session import ClientSession

from ..dependencies import CurrentSessionDep, RegistryDep, bad_request

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/matches", tags=["matches"])


async def _deck(session: ClientSession, *, reload: bool = False) -> MatchDeck:
    deck: MatchDeck | None = session.cached_view("deck")
    if deck is None or reload:
        deck = await MatchDeck.load(session)
        session.store_view("deck", deck)
    return deck


@router.get("", response_model=list[MatchView])
async def list_matches(session: CurrentSessionDep) -> list[MatchView]:
    """Return the caller's matches, newest first."""
    return await aggregation.load_matches(session.backend, session.require_identity())


@router.get("/candidates", response_model=DeckResponse)
async def candidates(
    session: CurrentSessionDep,
    reload: Annotated[bool, Query(description="Fetch a fresh batch")] = False,
) -> DeckResponse:
    """Return the current candidate of the caller's deck.

    A fresh batch is loaded on first use, on request, or once the deck is used up.
    """
    deck = await _deck(session, reload=reload)
    if deck.exhausted and not reload:
        deck = await _deck(session, reload=True)
    return deck.snapshot()


@router.post("/swipe", response_model=SwipeResponse)
async def swipe(payload: SwipeRequest, session: CurrentSessionDep) -> SwipeResponse:
    """Skip or match the current candidate.

    A right swipe only moves the deck on once the match is stored.
    """
    deck = await _deck(session)
    try:
        if payload.direction == "left":
            candidate = deck.swipe_left()
            return SwipeResponse(
                outcome="skipped",
                candidate_user_id=candidate.user_id,
                deck=deck.snapshot(),
            )

        match = await deck.swipe_right()
    except ValueError as err:
        raise bad_request(err) from err

    return SwipeResponse(
        outcome="matched",
        candidate_user_id=match.matched_user_id,
        match=match,
        deck=deck.snapshot(),
    )


@router.get("/{match_id}/messages", response_model=ChatView)
async def read_chat(match_id: str, session: CurrentSessionDep) -> ChatView:
    room = await ChatRoom.open(session, match_id)
    return room.view()


@router.post(
    "/{match_id}/messages",
    response_model=MessageRecord,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    match_id: str,
    payload: MessageCreate,
    session: CurrentSessionDep,
) -> MessageRecord:
    room = await ChatRoom.open(session, match_id)
    try:
        return await room.send(payload.content)
    except ValueError as err:
        raise bad_request(err) from err


@router.websocket("/{match_id}/ws")
async def chat_socket(
    websocket: WebSocket,
    match_id: str,
    registry: RegistryDep,
    token: Annotated[str, Query(description="Access token")],
) -> None:
    """Live chat: pushes every message of the match and accepts new ones.

    Incoming frames are ``{"content": "..."}``; outgoing frames are messages,
    or error notices shaped like the API's error bodies.
    """
    try:
        session = await registry.resolve(token)
        room = await ChatRoom.open(session, match_id)
    except BackendError as err:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=str(err))
        return

    await websocket.accept()
    pushed: set[str] = set()

    async def push(message: MessageRecord) -> None:
        if message.id in pushed:
            return
        pushed.add(message.id)
        await websocket.send_json(message.model_dump(mode="json"))

    async def notify(detail: str, kind: str) -> None:
        await websocket.send_json(ErrorResponse(detail=detail, kind=kind).model_dump())

    for message in list(room.messages):
        await push(message)

    async with room.watch(push):
        try:
            while True:
                try:
                    frame = await websocket.receive_json()
                except ValueError:
                    await notify("Frames must be JSON objects", "invalid")
                    continue
                content = frame.get("content", "") if isinstance(frame, dict) else ""
                try:
                    await push(await room.send(str(content)))
                except ValueError as err:
                    await notify(str(err), "invalid")
                except BackendError as err:
                    logger.warning("Chat send in match %s failed: %s", match_id, err)
                    await notify(str(err), err.kind)
        except WebSocketDisconnect:
            logger.debug("Chat socket for match %s disconnected", match_id)
