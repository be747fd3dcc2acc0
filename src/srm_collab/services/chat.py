"""One-to-one chat between the two participants of a match."""

from __future__ import annotations

import inspect
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from srm_collab.backend.base import ChangeEvent, ChangeType, Query, Subscription, eq
from srm_collab.core.errors import ForbiddenError, RecordNotFoundError
from srm_collab.schemas import AuthorSummary, ChatView, MatchRecord, MessageRecord
from srm_collab.services.aggregation import OLDEST_FIRST, author_for, fetch_profiles_by_id
from srm_collab.services.realtime import subscription
from srm_collab.services.session import ClientSession

logger = logging.getLogger(__name__)

MessageHandler = Callable[[MessageRecord], Awaitable[None] | None]


class ChatRoom:
    """Transcript of one match as seen by one participant."""

    def __init__(
        self,
        session: ClientSession,
        match: MatchRecord,
        peer: AuthorSummary,
        messages: list[MessageRecord] | None = None,
    ) -> None:
        self.session = session
        self.match = match
        self.peer = peer
        self.messages: list[MessageRecord] = []
        self._seen: set[str] = set()
        for message in messages or ():
            self._append(message)

    @classmethod
    async def open(cls, session: ClientSession, match_id: str) -> ChatRoom:
        """Open the chat for a match the session user takes part in.

        Raises:
            RecordNotFoundError: If the match does not exist.
            ForbiddenError: If the user is not one of the two participants.
        """
        user_id = session.require_identity()
        rows = await session.backend.query(Query("matches", (eq("id", match_id),), limit=1))
        if not rows:
            raise RecordNotFoundError(f"Match {match_id} not found")

        match = MatchRecord.model_validate(rows[0])
        if user_id not in match.participants():
            raise ForbiddenError("You are not part of this match")

        peer_id = match.matched_user_id if match.user_id == user_id else match.user_id
        profiles = await fetch_profiles_by_id(session.backend, [peer_id])
        room = cls(session, match, author_for(profiles, peer_id))
        await room.refresh()
        return room

    @property
    def peer_id(self) -> str:
        return self.peer.user_id

    def _append(self, message: MessageRecord) -> bool:
        if message.id in self._seen:
            return False
        self._seen.add(message.id)
        self.messages.append(message)
        self.messages.sort(key=lambda item: item.created_at)
        return True

    async def refresh(self) -> list[MessageRecord]:
        rows = await self.session.backend.query(
            Query("messages", (eq("match_id", self.match.id),), OLDEST_FIRST)
        )
        self.messages = []
        self._seen = set()
        for row in rows:
            self._append(MessageRecord.model_validate(row))
        return self.messages

    async def send(self, text: str) -> MessageRecord:
        user_id = self.session.require_identity()
        content = text.strip()
        if not content:
            raise ValueError("Message cannot be empty")

        record = await self.session.backend.insert(
            "messages",
            {
                "match_id": self.match.id,
                "sender_id": user_id,
                "receiver_id": self.peer_id,
                "content": content,
            },
        )
        message = MessageRecord.model_validate(record)
        self._append(message)
        return message

    @asynccontextmanager
    async def watch(self, handler: MessageHandler | None = None) -> AsyncIterator[Subscription]:
        """Append messages inserted into this match while the context is open."""

        async def on_event(event: ChangeEvent) -> None:
            if event.type is not ChangeType.INSERT:
                return
            message = MessageRecord.model_validate(dict(event.record))
            if self._append(message) and handler is not None:
                result = handler(message)
                if inspect.isawaitable(result):
                    await result

        async with subscription(
            self.session.backend, "messages", (eq("match_id", self.match.id),), on_event
        ) as sub:
            yield sub

    def view(self) -> ChatView:
        return ChatView(match=self.match, peer=self.peer, messages=list(self.messages))


__all__ = ["ChatRoom"]
