"""Version 1 API endpoints."""

from .endpoints import (
    auth_router,
    matches_router,
    polls_router,
    posts_router,
    profiles_router,
    streak_router,
)

__all__ = [
    "auth_router",
    "matches_router",
    "polls_router",
    "posts_router",
    "profiles_router",
    "streak_router",
]
