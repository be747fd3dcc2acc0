"""Login streak Pydantic schemas."""
from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict


class LoginStreakRecord(BaseModel):
    """Row of the ``login_streaks`` collection."""

    id: str | None = None
    user_id: str
    current_streak: int = 0
    last_login_date: date | None = None
    max_streak: int = 0

    model_config = ConfigDict(from_attributes=True, extra="ignore")
