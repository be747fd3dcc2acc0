"""
Pydantic schemas for records, view models and API requests.

Records mirror the platform's collections; views add joined authors and
derived values.
"""

from .auth import IdentityResponse, SignOutResponse
from .common import Base64Upload, ErrorResponse, FileUpload
from .match import (
    ChatView,
    DeckResponse,
    MatchRecord,
    MatchView,
    MessageCreate,
    MessageRecord,
    SwipeRequest,
    SwipeResponse,
)
from .poll import OptionResult, PollCreate, PollRecord, PollView, PollVote, vote_percentage
from .post import CommentCreate, CommentRecord, CommentView, PostCreate, PostRecord, PostView
from .profile import (
    UNKNOWN_USER_NAME,
    AuthorSummary,
    ProfileCriteria,
    ProfileFacets,
    ProfileOptions,
    ProfileRecord,
    ProfileUpdate,
)
from .streak import LoginStreakRecord

__all__ = [
    "UNKNOWN_USER_NAME",
    "AuthorSummary",
    "Base64Upload",
    "ChatView",
    "CommentCreate", "CommentRecord", "CommentView",
    "DeckResponse",
    "ErrorResponse",
    "FileUpload",
    "IdentityResponse",
    "LoginStreakRecord",
    "MatchRecord", "MatchView",
    "MessageCreate", "MessageRecord",
    "OptionResult",
    "PollCreate", "PollRecord", "PollView", "PollVote",
    "PostCreate", "PostRecord", "PostView",
    "ProfileCriteria", "ProfileFacets", "ProfileOptions", "ProfileRecord", "ProfileUpdate",
    "SignOutResponse",
    "SwipeRequest", "SwipeResponse",
    "vote_percentage",
]
