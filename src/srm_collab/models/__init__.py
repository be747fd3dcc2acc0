"""SQLAlchemy models for the local SRM Collab backend."""

from .match import Match, Message
from .poll import Poll
from .post import Comment, Post
from .profile import Profile
from .storage import StoredObject
from .streak import LoginStreak

__all__ = [
    "Comment",
    "LoginStreak",
    "Match", "Message",
    "Poll",
    "Post",
    "Profile",
    "StoredObject",
]
