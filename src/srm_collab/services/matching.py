"""Swipe deck of candidate profiles.

Each candidate starts UNSEEN. A left swipe marks it SKIPPED locally; a right
swipe persists a match edge and marks it MATCHED. The deck only advances past
a right swipe once the edge is confirmed written, so a failed write leaves the
same candidate in front of the user.
"""

from __future__ import annotations

import logging
from enum import Enum

from srm_collab.backend.base import Query, eq
from srm_collab.core.settings import settings
from srm_collab.schemas import DeckResponse, MatchRecord, ProfileCriteria, ProfileRecord
from srm_collab.services.aggregation import filter_profiles
from srm_collab.services.session import ClientSession

logger = logging.getLogger(__name__)


class CandidateState(str, Enum):
    UNSEEN = "unseen"
    SKIPPED = "skipped"
    MATCHED = "matched"


class MatchDeck:
    """Ordered batch of candidates and a pointer to the current one."""

    def __init__(self, session: ClientSession, candidates: list[ProfileRecord]) -> None:
        self.session = session
        self.candidates = candidates
        self.states: dict[str, CandidateState] = {
            candidate.user_id: CandidateState.UNSEEN for candidate in candidates
        }
        self.position = 0
        # Candidate whose match edge is being written; other swipes are refused meanwhile.
        self._pending: str | None = None

    @classmethod
    async def load(cls, session: ClientSession, *, batch_size: int | None = None) -> MatchDeck:
        """Build a deck excluding the user and everyone they already matched."""
        user_id = session.require_identity()
        matched = await session.backend.query(Query("matches", (eq("user_id", user_id),)))
        exclude = [user_id, *(row["matched_user_id"] for row in matched)]

        candidates = await filter_profiles(
            session.backend,
            ProfileCriteria(),
            exclude=exclude,
            limit=batch_size or settings.candidate_batch_size,
        )
        logger.debug("Loaded %d candidates for %s", len(candidates), user_id)
        return cls(session, candidates)

    @property
    def current(self) -> ProfileRecord | None:
        if self.exhausted:
            return None
        return self.candidates[self.position]

    @property
    def exhausted(self) -> bool:
        return self.position >= len(self.candidates)

    @property
    def remaining(self) -> int:
        return max(0, len(self.candidates) - self.position)

    def state_of(self, user_id: str) -> CandidateState:
        return self.states.get(user_id, CandidateState.UNSEEN)

    def _require_current(self) -> ProfileRecord:
        if self._pending is not None:
            raise ValueError("Previous swipe is still being saved")
        candidate = self.current
        if candidate is None:
            raise ValueError("No more candidates to swipe on")
        return candidate

    def swipe_left(self) -> ProfileRecord:
        """Skip the current candidate. Nothing is persisted."""
        candidate = self._require_current()
        self.states[candidate.user_id] = CandidateState.SKIPPED
        self.position += 1
        return candidate

    async def swipe_right(self) -> MatchRecord:
        """Match the current candidate.

        Raises:
            ValueError: If the deck is exhausted, the candidate is the user, or
                another right swipe is still being written.
            BackendError: If the edge is not written; the deck does not move.
        """
        candidate = self._require_current()
        user_id = self.session.require_identity()
        if candidate.user_id == user_id:
            raise ValueError("Cannot match with yourself")

        self._pending = candidate.user_id
        try:
            record = await self.session.backend.insert(
                "matches",
                {"user_id": user_id, "matched_user_id": candidate.user_id},
            )
        finally:
            self._pending = None
        self.states[candidate.user_id] = CandidateState.MATCHED
        self.position += 1
        logger.info("User %s matched with %s", user_id, candidate.user_id)
        return MatchRecord.model_validate(record)

    def snapshot(self) -> DeckResponse:
        return DeckResponse(current=self.current, remaining=self.remaining, exhausted=self.exhausted)


__all__ = ["CandidateState", "MatchDeck"]
