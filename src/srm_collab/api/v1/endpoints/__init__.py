"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .matches import router as matches_router
from .polls import router as polls_router
from .posts import router as posts_router
from .profiles import router as profiles_router
from .streak import router as streak_router

__all__ = [
    "auth_router",
    "matches_router",
    "polls_router",
    "posts_router",
    "profiles_router",
    "streak_router",
]
