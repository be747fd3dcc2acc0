# src/srm_collab/models/match.py
"""SQLAlchemy models for match edges and the chat messages they unlock."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from srm_collab.db.session import Base
from srm_collab.db.time import utcnow

from .profile import new_id


class Match(Base):
    """Directed edge created when a user swipes right on a candidate."""

    __tablename__ = "matches"
    __table_args__ = (
        UniqueConstraint("user_id", "matched_user_id", name="uq_matches_pair"),
        CheckConstraint("user_id != matched_user_id", name="ck_matches_no_self_match"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    matched_user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Message(Base):
    """Chat message between the two participants of a match."""

    __tablename__ = "messages"
    __table_args__ = (Index("ix_messages_match_id", "match_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    match_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("matches.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_id: Mapped[str] = mapped_column(String(36), nullable=False)
    receiver_id: Mapped[str] = mapped_column(String(36), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
