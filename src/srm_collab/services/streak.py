"""Consecutive-day login streaks."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import TYPE_CHECKING

from srm_collab.backend.base import Query, eq
from srm_collab.db.time import utctoday
from srm_collab.schemas import LoginStreakRecord

if TYPE_CHECKING:
    from srm_collab.services.session import ClientSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreakUpdate:
    """Counters after a login, and whether they need writing."""

    current_streak: int
    max_streak: int
    changed: bool


def advance_streak(
    today: date,
    last_login: date | None,
    streak: int = 0,
    max_streak: int = 0,
) -> StreakUpdate:
    """Apply one login on ``today`` to the stored counters.

    A first login starts at one. A second login on the same day changes
    nothing. A login the day after the last one extends the streak; any
    other gap restarts it at one. The maximum never decreases.
    """
    if last_login is None:
        return StreakUpdate(1, max(1, max_streak), True)
    if last_login == today:
        return StreakUpdate(streak, max_streak, False)
    if last_login == today - timedelta(days=1):
        extended = streak + 1
        return StreakUpdate(extended, max(extended, max_streak), True)
    return StreakUpdate(1, max(1, max_streak), True)


async def get_streak(session: ClientSession) -> LoginStreakRecord | None:
    user_id = session.require_identity()
    rows = await session.backend.query(
        Query("login_streaks", (eq("user_id", user_id),), limit=1)
    )
    return LoginStreakRecord.model_validate(rows[0]) if rows else None


async def record_login(session: ClientSession, today: date | None = None) -> LoginStreakRecord:
    """Count today's login for the session user.

    Writes only when the counters change, keyed by user id.
    """
    today = today or utctoday()
    existing = await get_streak(session)

    if existing is None:
        update = advance_streak(today, None)
    else:
        update = advance_streak(
            today,
            existing.last_login_date,
            existing.current_streak,
            existing.max_streak,
        )

    if not update.changed and existing is not None:
        return existing

    record = await session.backend.upsert(
        "login_streaks",
        {
            "user_id": session.user_id,
            "current_streak": update.current_streak,
            "last_login_date": today,
            "max_streak": update.max_streak,
        },
        on_conflict="user_id",
    )
    logger.debug("Streak for %s is now %d", session.user_id, update.current_streak)
    return LoginStreakRecord.model_validate(record)


__all__ = ["StreakUpdate", "advance_streak", "get_streak", "record_login"]
