# notes_app/routers/settings.py
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from notes_app.core.auth import get_current_user, get_session_id
from notes_app.core.config import settings
from notes_app.core.csrf import validate_csrf
from notes_app.core.db import get_db
from notes_app.core.errors import InvalidOrExpiredCode, Unauthorized, form_error
from notes_app.models.user import User
from notes_app.schemas.flow import ChangeEmailState
from notes_app.schemas.user import (
    ChangeEmailIn,
    ChangePasswordIn,
    ConnectionOut,
    ConnectionsOut,
    ProfileOut,
    TwoFactorSetupOut,
    TwoFactorStatusOut,
    TwoFactorVerifyIn,
    UserOut,
)
from notes_app.services import connections, sessions, verification
from notes_app.services.email import send_email
from notes_app.services.providers import PROVIDER_LABELS
from notes_app.utils import totp
from notes_app.utils.cookies import session_cookie, verify_cookie
from notes_app.utils.redirects import see_other
from notes_app.utils.toast import Toast, redirect_with_toast

router = APIRouter(prefix="/settings/profile", tags=["settings"])

TWO_FACTOR_URL = "/settings/profile/two-factor"


@router.get("", response_model=ProfileOut)
def profile(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return ProfileOut(
        user=UserOut.model_validate(user),
        active_sessions=sessions.count_active_sessions(db, user.id),
        is_two_fa_enabled=verification.is_two_factor_enabled(db, user.id),
    )


@router.post("/sign-out-of-sessions", dependencies=[Depends(validate_csrf)])
def sign_out_of_sessions(request: Request, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    count = sessions.sign_out_other_sessions(db, user.id, get_session_id(request))
    return redirect_with_toast(
        "/settings/profile",
        Toast(type="success", title="Signed out", description=f"Signed out of {count} other session(s)."),
    )


@router.post("/delete-data", dependencies=[Depends(validate_csrf)])
def delete_data(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    sessions.delete_user(db, user.id)
    response = redirect_with_toast(
        "/",
        Toast(type="success", title="Data Deleted", description="All of your data has been deleted"),
    )
    session_cookie.destroy(response)
    return response


@router.post("/password", dependencies=[Depends(validate_csrf)])
def change_password(payload: ChangePasswordIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if user.password is None:
        return form_error({"currentPassword": ["You do not have a password set"]})
    if not sessions.verify_user_password(db, payload.current_password, user_id=user.id):
        return form_error({"currentPassword": ["Incorrect password."]})
    sessions.update_password(db, user, payload.new_password)
    return redirect_with_toast(
        "/settings/profile",
        Toast(type="success", title="Password Changed", description="Your password has been changed."),
    )


@router.post("/change-email", dependencies=[Depends(validate_csrf)])
def change_email(
    payload: ChangeEmailIn,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if sessions.get_user_by_email(db, payload.email):
        return form_error({"email": ["This email is already in use"]})

    prepared = verification.prepare_verification(
        db,
        type=verification.CHANGE_EMAIL,
        target=user.id,
        period=settings.VERIFICATION_PERIOD_SECONDS,
        base_url=str(request.base_url),
    )
    sent = send_email(
        to=payload.email,
        subject="Epic Notes Email Change Verification",
        text=f"Here's your verification code: {prepared.otp}\nOr open this link: {prepared.verify_url}",
    )
    if not sent:
        return form_error({"": ["We could not send the verification email"]}, status_code=500)
    response = see_other(prepared.redirect_to)
    verify_cookie.save(response, ChangeEmailState(new_email=payload.email))
    return response


# ---------- two factor ----------

@router.get("/two-factor", response_model=TwoFactorStatusOut)
def two_factor_status(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return TwoFactorStatusOut(is_two_fa_enabled=verification.is_two_factor_enabled(db, user.id))


@router.post("/two-factor", dependencies=[Depends(validate_csrf)])
def start_two_factor(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    verification.start_two_factor_enrollment(
        db, user_id=user.id, period_seconds=settings.TWO_FA_ENROLLMENT_SECONDS
    )
    return see_other(f"{TWO_FACTOR_URL}/verify")


@router.get("/two-factor/verify", response_model=TwoFactorSetupOut)
def two_factor_setup(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    pending = verification.get_verification(db, type=verification.TWO_FA_VERIFY, target=user.id)
    if pending is None:
        return see_other(TWO_FACTOR_URL)
    config = verification.totp_config(pending)
    return TwoFactorSetupOut(
        otp_uri=totp.get_totp_auth_uri(config, account_name=user.email, issuer=settings.TWO_FA_ISSUER),
        secret=config.secret,
    )


@router.post("/two-factor/verify", dependencies=[Depends(validate_csrf)])
def confirm_two_factor(payload: TwoFactorVerifyIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if not verification.is_code_valid(db, type=verification.TWO_FA_VERIFY, target=user.id, code=payload.code):
        raise InvalidOrExpiredCode()
    verification.confirm_two_factor_enrollment(db, user_id=user.id)
    return redirect_with_toast(
        TWO_FACTOR_URL,
        Toast(type="success", title="Enabled", description="Two-factor authentication has been enabled."),
    )


@router.post("/two-factor/disable", dependencies=[Depends(validate_csrf)])
def disable_two_factor(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    verification.disable_two_factor(db, user.id)
    return redirect_with_toast(
        TWO_FACTOR_URL,
        Toast(title="2FA Disabled", description="Two factor authentication has been disabled."),
    )


# ---------- connections ----------

def _connection_out(conn) -> ConnectionOut:
    label = PROVIDER_LABELS.get(conn.provider_name, conn.provider_name)
    return ConnectionOut(
        id=conn.id,
        provider_name=conn.provider_name,
        provider_id=conn.provider_id,
        display_name=f"{label} {conn.provider_id}",
        created_at=conn.created_at,
    )


@router.get("/connections", response_model=ConnectionsOut)
def list_connections(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return ConnectionsOut(
        connections=[_connection_out(c) for c in connections.list_connections(db, user.id)],
        can_delete_connections=connections.user_can_delete_connections(db, user.id),
    )


@router.delete("/connections/{connection_id}", dependencies=[Depends(validate_csrf)])
def delete_connection(connection_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if not connections.user_can_delete_connections(db, user.id):
        raise Unauthorized("You cannot delete your last connection unless you have a password.")
    if not connections.delete_connection(db, user_id=user.id, connection_id=connection_id):
        raise HTTPException(status_code=404, detail="connection_not_found")
    return redirect_with_toast(
        "/settings/profile/connections",
        Toast(type="success", title="Deleted", description="Your connection has been deleted."),
    )
