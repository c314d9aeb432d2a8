# notes_app/services/sessions.py
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from notes_app.core.config import settings
from notes_app.core.logging import get_logger
from notes_app.core.security import hash_password, verify_password
from notes_app.models.connection import Connection
from notes_app.models.session import Session as AuthSession
from notes_app.models.user import Password, User
from notes_app.models.verification import Verification

logger = get_logger(__name__)


def get_session_expiration_date() -> datetime:
    return datetime.utcnow() + timedelta(days=settings.SESSION_EXPIRATION_DAYS)


def create_session(db: Session, user_id: str) -> AuthSession:
    session = AuthSession(user_id=user_id, expiration_date=get_session_expiration_date())
    db.add(session)
    db.commit()
    db.refresh(session)
    logger.info("session created for user %s", user_id)
    return session


def get_active_session(db: Session, session_id: str) -> Optional[AuthSession]:
    """Non-expired session whose user still exists, else None."""
    return (
        db.query(AuthSession)
        .join(User, User.id == AuthSession.user_id)
        .filter(AuthSession.id == session_id, AuthSession.expiration_date > datetime.utcnow())
        .first()
    )


def destroy_session(db: Session, session_id: str) -> None:
    deleted = db.query(AuthSession).filter(AuthSession.id == session_id).delete(synchronize_session=False)
    db.commit()
    if deleted:
        logger.info("session %s destroyed", session_id[:8])


def sign_out_other_sessions(db: Session, user_id: str, current_session_id: str) -> int:
    deleted = (
        db.query(AuthSession)
        .filter(AuthSession.user_id == user_id, AuthSession.id != current_session_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info("signed user %s out of %d other sessions", user_id, deleted)
    return deleted


def count_active_sessions(db: Session, user_id: str) -> int:
    return (
        db.query(AuthSession)
        .filter(AuthSession.user_id == user_id, AuthSession.expiration_date > datetime.utcnow())
        .count()
    )


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username.lower()).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.lower()).first()


def verify_user_password(db: Session, password: str, *, username: Optional[str] = None, user_id: Optional[str] = None) -> Optional[User]:
    """
    Look up a user by username or id and check the password.

    Returns None both when the user is unknown and when the password is wrong.
    """
    q = db.query(User)
    if user_id is not None:
        user = q.filter(User.id == user_id).first()
    elif username is not None:
        user = q.filter(User.username == username.lower()).first()
    else:
        raise ValueError("username or user_id is required")

    if not user or not user.password:
        return None
    if not verify_password(password, user.password.hash):
        return None
    return user


def login(db: Session, *, username: str, password: str) -> Optional[AuthSession]:
    user = verify_user_password(db, password, username=username)
    if not user:
        logger.info("failed login attempt")
        return None
    return create_session(db, user.id)


def _new_user(email: str, username: str, name: Optional[str]) -> User:
    return User(email=email.lower(), username=username.lower(), name=name)


def signup(db: Session, *, email: str, username: str, password: str, name: Optional[str]) -> AuthSession:
    user = _new_user(email, username, name)
    user.password = Password(hash=hash_password(password))
    db.add(user)
    db.flush()
    session = AuthSession(user_id=user.id, expiration_date=get_session_expiration_date())
    db.add(session)
    db.commit()
    db.refresh(session)
    logger.info("user %s signed up", user.id)
    return session


def signup_with_connection(
    db: Session,
    *,
    email: str,
    username: str,
    name: Optional[str],
    provider_name: str,
    provider_id: str,
) -> AuthSession:
    user = _new_user(email, username, name)
    user.connections.append(Connection(provider_name=provider_name, provider_id=provider_id))
    db.add(user)
    db.flush()
    session = AuthSession(user_id=user.id, expiration_date=get_session_expiration_date())
    db.add(session)
    db.commit()
    db.refresh(session)
    logger.info("user %s signed up with %s", user.id, provider_name)
    return session


def reset_user_password(db: Session, *, username: str, password: str) -> Optional[User]:
    """None when the account was deleted after the reset code was checked."""
    user = get_user_by_username(db, username)
    if user is None:
        logger.info("password reset for missing user %s", username)
        return None
    update_password(db, user, password)
    logger.info("password reset for user %s", user.id)
    return user


def update_password(db: Session, user: User, password: str) -> None:
    if user.password:
        user.password.hash = hash_password(password)
    else:
        user.password = Password(hash=hash_password(password))
    user.updated_at = datetime.utcnow()
    db.commit()


def delete_user(db: Session, user_id: str) -> None:
    """Delete the user and everything they own, verifications targeted at them included."""
    user = db.get(User, user_id)
    if not user:
        return
    db.query(Verification).filter(Verification.target == user_id).delete(synchronize_session=False)
    db.delete(user)
    db.commit()
    logger.info("user %s deleted", user_id)
