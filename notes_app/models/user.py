# notes_app/models/user.py
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from notes_app.core.db import Base


def new_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)

    # stored lowercase
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    password = relationship(
        "Password", uselist=False, back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    sessions = relationship("Session", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    connections = relationship(
        "Connection", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self):
        return f"<User {self.username}>"


class Password(Base):
    __tablename__ = "passwords"

    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    # salted hash only, never the plaintext
    hash = Column(Text, nullable=False)

    user = relationship("User", back_populates="password")
