# notes_app/routers/auth.py
from fastapi import APIRouter, Depends, Request, Response
from fastapi_csrf_protect import CsrfProtect
from sqlalchemy import or_
from sqlalchemy.orm import Session

from notes_app.core.auth import anonymous_only, commit_session, get_session_id, handle_new_session, require_anonymous
from notes_app.core.config import settings
from notes_app.core.csrf import issue_csrf_token, validate_csrf
from notes_app.core.db import get_db
from notes_app.core.errors import form_error
from notes_app.models.user import User
from notes_app.schemas.auth import ForgotPasswordIn, LoginIn, OnboardingIn, ResetPasswordIn, SignupIn
from notes_app.schemas.flow import OnboardingState, ResetPasswordState
from notes_app.services import sessions, verification
from notes_app.services.email import send_email
from notes_app.utils.cookies import session_cookie, verify_cookie
from notes_app.utils.redirects import safe_redirect, see_other
from notes_app.utils.toast import Toast, set_toast

router = APIRouter(tags=["auth"])


@router.get("/csrf")
def csrf(response: Response, csrf_protect: CsrfProtect = Depends()):
    return {"csrfToken": issue_csrf_token(response, csrf_protect)}


@router.post("/login", dependencies=[Depends(validate_csrf), Depends(anonymous_only)])
def login(payload: LoginIn, db: Session = Depends(get_db)):
    session = sessions.login(db, username=payload.username, password=payload.password)
    if session is None:
        # same answer for unknown user and wrong password
        return form_error({"": ["Invalid username or password"]})
    return handle_new_session(db, session, remember=payload.remember, redirect_to=payload.redirect_to)


@router.get("/logout")
def logout_page():
    return see_other("/")


@router.post("/logout")
def logout(request: Request, db: Session = Depends(get_db)):
    session_id = get_session_id(request)
    if session_id:
        sessions.destroy_session(db, session_id)
    response = see_other("/")
    session_cookie.destroy(response)
    return response


@router.post("/signup", dependencies=[Depends(validate_csrf), Depends(anonymous_only)])
def signup(payload: SignupIn, request: Request, db: Session = Depends(get_db)):
    if sessions.get_user_by_email(db, payload.email):
        return form_error({"email": ["A user already exists with this email"]})

    prepared = verification.prepare_verification(
        db,
        type=verification.ONBOARDING,
        target=payload.email,
        period=settings.VERIFICATION_PERIOD_SECONDS,
        base_url=str(request.base_url),
        redirect_to=payload.redirect_to,
    )
    sent = send_email(
        to=payload.email,
        subject="Welcome to Epic Notes!",
        text=f"Here's your verification code: {prepared.otp}\nOr open this link: {prepared.verify_url}",
    )
    if not sent:
        return form_error({"": ["We could not send the verification email"]}, status_code=500)
    return see_other(prepared.redirect_to)


@router.get("/onboarding")
def onboarding_page(request: Request, db: Session = Depends(get_db)):
    require_anonymous(db, request)
    state = verify_cookie.load(request, OnboardingState)
    if state is None:
        return see_other("/signup")
    return {"email": state.email}


@router.post("/onboarding", dependencies=[Depends(validate_csrf), Depends(anonymous_only)])
def onboarding(payload: OnboardingIn, request: Request, db: Session = Depends(get_db)):
    state = verify_cookie.load(request, OnboardingState)
    if state is None:
        return see_other("/signup")
    if sessions.get_user_by_username(db, payload.username):
        return form_error({"username": ["A user already exists with this username"]})
    if sessions.get_user_by_email(db, state.email):
        return form_error({"": ["A user already exists with this email"]})

    session = sessions.signup(
        db,
        email=state.email,
        username=payload.username,
        password=payload.password,
        name=payload.name,
    )
    response = see_other(safe_redirect(payload.redirect_to))
    commit_session(response, session, remember=payload.remember)
    verify_cookie.destroy(response)
    set_toast(response, Toast(title="Welcome", description="Thanks for signing up!", type="success"))
    return response


@router.post("/forgot-password", dependencies=[Depends(validate_csrf), Depends(anonymous_only)])
def forgot_password(payload: ForgotPasswordIn, request: Request, db: Session = Depends(get_db)):
    value = payload.username_or_email.lower()
    user = db.query(User).filter(or_(User.email == value, User.username == value)).first()
    if not user:
        return form_error({"usernameOrEmail": ["No user exists with this username or email"]})

    prepared = verification.prepare_verification(
        db,
        type=verification.RESET_PASSWORD,
        target=value,
        period=settings.VERIFICATION_PERIOD_SECONDS,
        base_url=str(request.base_url),
    )
    sent = send_email(
        to=user.email,
        subject="Epic Notes Password Reset",
        text=f"Here's your verification code: {prepared.otp}\nOr open this link: {prepared.verify_url}",
    )
    if not sent:
        return form_error({"": ["We could not send the password reset email"]}, status_code=500)
    return see_other(prepared.redirect_to)


@router.get("/reset-password")
def reset_password_page(request: Request):
    state = verify_cookie.load(request, ResetPasswordState)
    if state is None:
        return see_other("/login")
    return {"username": state.username}


@router.post("/reset-password", dependencies=[Depends(validate_csrf)])
def reset_password(payload: ResetPasswordIn, request: Request, db: Session = Depends(get_db)):
    state = verify_cookie.load(request, ResetPasswordState)
    if state is None:
        return see_other("/login")
    user = sessions.reset_user_password(db, username=state.username, password=payload.password)
    response = see_other("/login")
    if user is None:
        set_toast(response, Toast(title="Account not found", description="Request a new reset code.", type="error"))
    verify_cookie.destroy(response)
    return response
