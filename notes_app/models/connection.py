# notes_app/models/connection.py
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from notes_app.core.db import Base
from notes_app.models.user import new_id


class Connection(Base):
    __tablename__ = "connections"
    # one external identity -> at most one user
    __table_args__ = (UniqueConstraint("provider_name", "provider_id", name="uq_connections_provider"),)

    id = Column(String(32), primary_key=True, default=new_id)
    provider_name = Column(String(32), nullable=False)
    provider_id = Column(String(255), nullable=False)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="connections")
