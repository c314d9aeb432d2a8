# notes_app/models/session.py
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from notes_app.core.db import Base
from notes_app.models.user import new_id


class Session(Base):
    """Login session. The id is the opaque value carried by the session cookie."""

    __tablename__ = "sessions"

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expiration_date = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    user = relationship("User", back_populates="sessions")
