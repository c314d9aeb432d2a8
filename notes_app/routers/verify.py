# notes_app/routers/verify.py
"""
/verify: both channels (typed code and emailed link) land here.

Each verification type has one handler that runs after the code has been
accepted and decides where the user goes next.
"""

from datetime import datetime
from typing import Callable, Dict, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy import or_
from sqlalchemy.orm import Session

from notes_app.core.auth import commit_session, get_user_id
from notes_app.core.csrf import validate_csrf
from notes_app.core.db import get_db
from notes_app.core.errors import InvalidOrExpiredCode, form_error
from notes_app.core.logging import get_logger
from notes_app.models.session import Session as AuthSession
from notes_app.models.user import User
from notes_app.schemas.auth import VerifyIn
from notes_app.schemas.flow import ChangeEmailState, OnboardingState, ResetPasswordState, TwoFactorLoginState
from notes_app.services import sessions, verification
from notes_app.services.email import send_email
from notes_app.utils.cookies import verify_cookie
from notes_app.utils.redirects import safe_redirect, see_other
from notes_app.utils.toast import Toast, redirect_with_toast

logger = get_logger(__name__)

router = APIRouter(tags=["verify"])

Handler = Callable[[Session, Request, str, Optional[str]], Response]


def _handle_onboarding(db: Session, request: Request, target: str, redirect_to: Optional[str]) -> Response:
    if sessions.get_user_by_email(db, target):
        return form_error({"": ["A user already exists with this email"]})
    verification.consume_verification(db, type=verification.ONBOARDING, target=target)
    url = "/onboarding"
    if redirect_to:
        url += "?" + urlencode({"redirectTo": redirect_to})
    response = see_other(url)
    verify_cookie.save(response, OnboardingState(email=target))
    return response


def _handle_reset_password(db: Session, request: Request, target: str, redirect_to: Optional[str]) -> Response:
    value = target.lower()
    user = db.query(User).filter(or_(User.email == value, User.username == value)).first()
    if user is None:
        # account vanished between request and verification
        raise InvalidOrExpiredCode()
    verification.consume_verification(db, type=verification.RESET_PASSWORD, target=target)
    response = see_other("/reset-password")
    verify_cookie.save(response, ResetPasswordState(username=user.username))
    return response


def _handle_change_email(db: Session, request: Request, target: str, redirect_to: Optional[str]) -> Response:
    state = verify_cookie.load(request, ChangeEmailState)
    if state is None:
        return redirect_with_toast(
            "/settings/profile/change-email",
            Toast(type="error", title="Could not find your new email", description="Please try again."),
        )
    user = db.get(User, target)
    if user is None or get_user_id(db, request) != user.id:
        raise InvalidOrExpiredCode()
    if sessions.get_user_by_email(db, state.new_email):
        return form_error({"email": ["This email is already in use"]})

    verification.consume_verification(db, type=verification.CHANGE_EMAIL, target=target)
    old_email = user.email
    user.email = state.new_email.lower()
    user.updated_at = datetime.utcnow()
    db.commit()
    logger.info("email changed for user %s", user.id)
    send_email(
        to=old_email,
        subject="Epic Notes email changed",
        text=f"Your Epic Notes email has been changed to {user.email}. "
        "If you did not make this change, please contact support immediately.",
    )

    response = redirect_with_toast(
        "/settings/profile",
        Toast(title="Email Changed", description=f"Your email has been changed to {user.email}", type="success"),
    )
    verify_cookie.destroy(response)
    return response


def _handle_two_factor_login(db: Session, request: Request, target: str, redirect_to: Optional[str]) -> Response:
    state = verify_cookie.load(request, TwoFactorLoginState)
    session = db.get(AuthSession, state.unverified_session_id) if state else None
    if session is None or session.user_id != target or session.expiration_date <= datetime.utcnow():
        return redirect_with_toast(
            "/login",
            Toast(type="error", title="Invalid session", description="Could not find session to verify. Please try again."),
        )
    # 2fa row stays, it is checked again on every login
    response = see_other(safe_redirect(redirect_to))
    commit_session(response, session, remember=state.remember)
    verify_cookie.destroy(response)
    return response


VERIFICATION_HANDLERS: Dict[str, Handler] = {
    verification.ONBOARDING: _handle_onboarding,
    verification.RESET_PASSWORD: _handle_reset_password,
    verification.CHANGE_EMAIL: _handle_change_email,
    verification.TWO_FA: _handle_two_factor_login,
}


def validate_request(
    db: Session,
    request: Request,
    *,
    type: str,
    target: str,
    code: str,
    redirect_to: Optional[str] = None,
) -> Response:
    handler = VERIFICATION_HANDLERS.get(type)
    if handler is None:
        return form_error({"type": ["Invalid verification type"]})
    if not verification.is_code_valid(db, type=type, target=target, code=code):
        raise InvalidOrExpiredCode()
    return handler(db, request, target, redirect_to)


@router.get("/verify")
def verify_page(
    request: Request,
    type: Optional[str] = None,
    target: Optional[str] = None,
    code: Optional[str] = None,
    redirect_to: Optional[str] = Query(None, alias="redirectTo"),
    db: Session = Depends(get_db),
):
    # emailed link carries the code, validate right away
    if code and type and target:
        return validate_request(db, request, type=type, target=target, code=code, redirect_to=redirect_to)
    return {"type": type, "target": target, "redirectTo": redirect_to}


@router.post("/verify", dependencies=[Depends(validate_csrf)])
def verify(payload: VerifyIn, request: Request, db: Session = Depends(get_db)):
    return validate_request(
        db,
        request,
        type=payload.type,
        target=payload.target,
        code=payload.code,
        redirect_to=payload.redirect_to,
    )
