"""Login streak endpoint."""

from fastapi import APIRouter

from srm_collab.schemas import LoginStreakRecord
from srm_collab.services.streak import get_streak, record_login

from ..dependencies import CurrentSessionDep

router = APIRouter(prefix="/streak", tags=["streak"])


@router.get("", response_model=LoginStreakRecord)
async def read_streak(session: CurrentSessionDep) -> LoginStreakRecord:
    """Return the caller's streak, counting today's login if not yet recorded."""
    streak = await get_streak(session)
    if streak is None:
        streak = await record_login(session)
    return streak
