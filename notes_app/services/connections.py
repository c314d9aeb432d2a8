# notes_app/services/connections.py
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from notes_app.core.errors import ConnectionConflict
from notes_app.core.logging import get_logger
from notes_app.models.connection import Connection
from notes_app.models.user import User

logger = get_logger(__name__)


def get_connection(db: Session, *, provider_name: str, provider_id: str) -> Optional[Connection]:
    return (
        db.query(Connection)
        .filter(Connection.provider_name == provider_name, Connection.provider_id == provider_id)
        .first()
    )


def create_connection(db: Session, *, user_id: str, provider_name: str, provider_id: str) -> Connection:
    conn = Connection(user_id=user_id, provider_name=provider_name, provider_id=provider_id)
    db.add(conn)
    try:
        db.commit()
    except IntegrityError:
        # another request linked the same identity first
        db.rollback()
        existing = get_connection(db, provider_name=provider_name, provider_id=provider_id)
        if existing is not None and existing.user_id == user_id:
            return existing
        raise ConnectionConflict(provider_name, provider_id)
    db.refresh(conn)
    logger.info("connected %s account to user %s", provider_name, user_id)
    return conn


def list_connections(db: Session, user_id: str) -> List[Connection]:
    return db.query(Connection).filter(Connection.user_id == user_id).order_by(Connection.created_at).all()


def user_can_delete_connections(db: Session, user_id: str) -> bool:
    user = db.get(User, user_id)
    if user is None:
        return False
    # with a password the user can always log in
    if user.password is not None:
        return True
    # otherwise keep at least one way in
    count = db.query(Connection).filter(Connection.user_id == user_id).count()
    return count > 1


def delete_connection(db: Session, *, user_id: str, connection_id: str) -> bool:
    deleted = (
        db.query(Connection)
        .filter(Connection.id == connection_id, Connection.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    return bool(deleted)
