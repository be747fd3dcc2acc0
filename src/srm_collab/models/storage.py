# src/srm_collab/models/storage.py
"""SQLAlchemy model holding uploaded objects for the local backend."""

from datetime import datetime

from sqlalchemy import DateTime, LargeBinary, Text
from sqlalchemy.orm import Mapped, mapped_column

from srm_collab.db.session import Base
from srm_collab.db.time import utcnow


class StoredObject(Base):
    """Uploaded bytes addressed by bucket and path."""

    __tablename__ = "storage_objects"

    bucket: Mapped[str] = mapped_column(Text, primary_key=True)
    path: Mapped[str] = mapped_column(Text, primary_key=True)
    content: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    content_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
