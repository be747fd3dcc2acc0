"""Service layer: sessions, aggregation and mutations over a backend."""

from .chat import ChatRoom
from .feed import FeedState
from .matching import CandidateState, MatchDeck
from .polls import PollBoard
from .session import ClientSession, MutationGuard, SessionRegistry
from .streak import StreakUpdate, advance_streak

__all__ = [
    "CandidateState",
    "ChatRoom",
    "ClientSession",
    "FeedState",
    "MatchDeck",
    "MutationGuard",
    "PollBoard",
    "SessionRegistry",
    "StreakUpdate",
    "advance_streak",
]
