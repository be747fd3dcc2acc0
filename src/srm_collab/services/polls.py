"""Poll board state, votes and poll creation."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from srm_collab.backend.base import Subscription
from srm_collab.core.errors import RecordNotFoundError
from srm_collab.core.settings import settings
from srm_collab.schemas import PollView
from srm_collab.services.aggregation import join_polls, load_polls
from srm_collab.services.optimistic import run_optimistic
from srm_collab.services.realtime import refetch_on_change
from srm_collab.services.session import VOTE, ClientSession

logger = logging.getLogger(__name__)


def clean_options(options: list[str]) -> list[str]:
    """Strip labels and drop blank ones, checking count and uniqueness."""
    cleaned = [option.strip() for option in options if option and option.strip()]
    if not settings.poll_min_options <= len(cleaned) <= settings.poll_max_options:
        raise ValueError(
            f"A poll needs between {settings.poll_min_options} and "
            f"{settings.poll_max_options} options"
        )
    if len(set(cleaned)) != len(cleaned):
        raise ValueError("Poll options must be distinct")
    return cleaned


class PollBoard:
    """Polls as currently shown to one session."""

    def __init__(self, session: ClientSession) -> None:
        self.session = session
        self.polls: list[PollView] = []

    async def refresh(self) -> list[PollView]:
        self.polls = await load_polls(self.session.backend)
        return self.polls

    def find(self, poll_id: str) -> PollView | None:
        return next((poll for poll in self.polls if poll.id == poll_id), None)

    async def vote(self, poll_id: str, option: str) -> PollView:
        """Cast one vote optimistically.

        The whole vote mapping, with ``option`` incremented, is written back.

        Raises:
            ValueError: If ``option`` is not one of the poll's options.
            DuplicateMutationError: If this session already voted on the poll.
            RecordNotFoundError: If the poll does not exist.
        """
        poll = self.find(poll_id)
        if poll is None:
            await self.refresh()
            poll = self.find(poll_id)
        if poll is None:
            raise RecordNotFoundError(f"Poll {poll_id} not found")
        if option not in poll.options:
            raise ValueError(f"'{option}' is not an option of this poll")

        previous = dict(poll.votes)
        updated = {**previous, option: previous.get(option, 0) + 1}

        def apply() -> Callable[[], None]:
            poll.votes = updated

            def revert() -> None:
                poll.votes = previous

            return revert

        async def write() -> None:
            stored = await self.session.backend.update("polls", poll_id, {"votes": updated})
            poll.votes = stored.get("votes") or updated

        await run_optimistic(self.session.guard, VOTE, poll_id, apply=apply, write=write)
        return poll

    def has_voted(self, poll_id: str) -> bool:
        return self.session.guard.is_claimed(VOTE, poll_id)

    @asynccontextmanager
    async def watch(
        self,
        on_change: Callable[[list[PollView]], Awaitable[None] | None] | None = None,
    ) -> AsyncIterator[Subscription]:
        """Re-aggregate the board whenever any poll changes."""
        async with refetch_on_change(
            self.session.backend, "polls", (), self.refresh, on_change
        ) as sub:
            yield sub


async def create_poll(session: ClientSession, question: str, options: list[str]) -> PollView:
    """Create a poll with every option at zero votes.

    Raises:
        ValueError: If the question is blank or the options are invalid.
    """
    user_id = session.require_identity()
    text = question.strip()
    if not text:
        raise ValueError("Poll question cannot be empty")
    labels = clean_options(options)

    record = await session.backend.insert(
        "polls",
        {
            "user_id": user_id,
            "question": text,
            "options": labels,
            "votes": {label: 0 for label in labels},
        },
    )
    logger.info("User %s created poll %s", user_id, record["id"])
    views = await join_polls(session.backend, [record])
    return views[0]


__all__ = ["PollBoard", "clean_options", "create_poll"]
