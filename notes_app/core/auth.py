# notes_app/core/auth.py
from typing import Optional

from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from notes_app.core.db import get_db
from notes_app.core.errors import AlreadyAuthenticated, StaleSession, Unauthenticated
from notes_app.core.logging import get_logger
from notes_app.models.session import Session as AuthSession
from notes_app.models.user import User
from notes_app.schemas.flow import TwoFactorLoginState
from notes_app.services import sessions, verification
from notes_app.utils.cookies import session_cookie, verify_cookie
from notes_app.utils.redirects import safe_redirect, see_other

logger = get_logger(__name__)

SESSION_KEY = "sessionId"

# default for require_user_id: come back to the current url after login
_CURRENT_URL = object()


def get_session_id(request: Request) -> Optional[str]:
    data = session_cookie.read(request)
    if not data:
        return None
    session_id = data.get(SESSION_KEY)
    return session_id if isinstance(session_id, str) and session_id else None


def get_user_id(db: Session, request: Request) -> Optional[str]:
    """
    User id behind the session cookie, or None when there is no cookie.

    A cookie that no longer matches a live session (expired, deleted, user
    gone) is logged out: the row is removed and ``StaleSession`` is raised so
    the cookie gets cleared.
    """
    session_id = get_session_id(request)
    if not session_id:
        return None
    session = sessions.get_active_session(db, session_id)
    if session is None:
        logger.info("stale session cookie, logging out")
        sessions.destroy_session(db, session_id)
        raise StaleSession()
    return session.user_id


def require_user_id(db: Session, request: Request, redirect_to=_CURRENT_URL) -> str:
    """Like ``get_user_id`` but raises ``Unauthenticated``; ``redirect_to=None`` drops the return path."""
    user_id = get_user_id(db, request)
    if not user_id:
        if redirect_to is _CURRENT_URL:
            redirect_to = request.url.path
            if request.url.query:
                redirect_to = f"{redirect_to}?{request.url.query}"
        raise Unauthenticated(redirect_to)
    return user_id


def require_anonymous(db: Session, request: Request) -> None:
    if get_user_id(db, request):
        raise AlreadyAuthenticated()


def require_user(db: Session, request: Request) -> User:
    user = db.get(User, require_user_id(db, request))
    if user is None:
        raise StaleSession()
    return user


# ---------- dependencies ----------

def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    return require_user(db, request)


def anonymous_only(request: Request, db: Session = Depends(get_db)) -> None:
    require_anonymous(db, request)


# ---------- cookie side ----------

def commit_session(response: Response, session: AuthSession, *, remember: bool) -> None:
    # without "remember me" the cookie dies with the browser session
    session_cookie.commit(
        response,
        {SESSION_KEY: session.id},
        expires=session.expiration_date if remember else None,
    )


def handle_new_session(
    db: Session,
    session: AuthSession,
    *,
    remember: bool,
    redirect_to: Optional[str] = None,
) -> Response:
    """
    Finish a login. Users with 2FA get sent to /verify first and the session
    only reaches the cookie once the code checks out.
    """
    if verification.is_two_factor_enabled(db, session.user_id):
        url = verification.get_redirect_to_url(
            "", type=verification.TWO_FA, target=session.user_id, redirect_to=redirect_to
        )
        response = see_other(url)
        verify_cookie.save(response, TwoFactorLoginState(unverified_session_id=session.id, remember=remember))
        return response

    response = see_other(safe_redirect(redirect_to))
    commit_session(response, session, remember=remember)
    return response
