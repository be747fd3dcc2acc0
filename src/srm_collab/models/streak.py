# src/srm_collab/models/streak.py
"""SQLAlchemy model for per-user login streaks."""

from datetime import date, datetime

from sqlalchemy import Date, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from srm_collab.db.session import Base
from srm_collab.db.time import utcnow

from .profile import new_id


class LoginStreak(Base):
    """Consecutive-day login counters, upserted keyed by user id."""

    __tablename__ = "login_streaks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_login_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    max_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )
