# notes_app/models/verification.py
from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint

from notes_app.core.db import Base
from notes_app.models.user import new_id


class Verification(Base):
    """
    Pending (or, for 2fa, persistent) one-time-password configuration.

    ``target`` is any string (user id, email, username); there is at most one
    row per (target, type). ``expires_at`` is NULL for rows that never expire.
    """

    __tablename__ = "verifications"
    __table_args__ = (UniqueConstraint("target", "type", name="uq_verifications_target_type"),)

    id = Column(String(32), primary_key=True, default=new_id)
    type = Column(String(32), nullable=False)
    target = Column(String(255), nullable=False)

    secret = Column(String(128), nullable=False)
    algorithm = Column(String(16), nullable=False)
    digits = Column(Integer, nullable=False)
    period = Column(Integer, nullable=False)
    char_set = Column(String(64), nullable=False)

    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
