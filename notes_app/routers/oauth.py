# notes_app/routers/oauth.py
"""
Third-party login: start, callback and provider onboarding.

The callback asks ``services.oauth.decide`` what the returned identity means
and hands the decision to exactly one outcome handler below.
"""

import secrets
from typing import Callable, Dict, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Body, Depends, Request, Response
from sqlalchemy.orm import Session

from notes_app.core.auth import commit_session, get_user_id, handle_new_session, require_anonymous
from notes_app.core.csrf import validate_csrf
from notes_app.core.db import get_db
from notes_app.core.errors import ConnectionConflict, StaleSession, form_error
from notes_app.core.logging import get_logger
from notes_app.schemas.auth import ProviderOnboardingIn, ProviderStartIn
from notes_app.schemas.flow import OnboardingState, ProviderProfile
from notes_app.services import sessions
from notes_app.services.connections import create_connection
from notes_app.services.oauth import OAuthDecision, OAuthOutcome, decide
from notes_app.services.providers import GitHubProvider, ProviderAuthError, get_provider
from notes_app.utils.cookies import connection_cookie, redirect_to_cookie, session_cookie, verify_cookie
from notes_app.utils.redirects import safe_redirect, see_other
from notes_app.utils.toast import Toast, redirect_with_toast, set_toast

logger = get_logger(__name__)

router = APIRouter(tags=["oauth"])

CONNECTIONS_URL = "/settings/profile/connections"


class CallbackContext:
    def __init__(
        self,
        db: Session,
        provider: GitHubProvider,
        profile: Optional[ProviderProfile],
        decision: OAuthDecision,
        redirect_to: Optional[str],
    ):
        self.db = db
        self.provider = provider
        self.profile = profile
        self.decision = decision
        self.redirect_to = redirect_to

    @property
    def display_name(self) -> str:
        return self.profile.username or self.profile.email


@router.post("/auth/{provider}")
def start_provider_login(
    payload: Optional[ProviderStartIn] = Body(None),
    provider: GitHubProvider = Depends(get_provider),
):
    state = secrets.token_urlsafe(16)
    response = see_other(provider.authorize_url(state))
    connection_cookie.commit(response, {"state": state})
    redirect_to = payload.redirect_to if payload else None
    if redirect_to:
        redirect_to_cookie.commit(response, {"to": redirect_to})
    else:
        redirect_to_cookie.destroy(response)
    return response


@router.get("/auth/{provider}")
def provider_login_page(provider: GitHubProvider = Depends(get_provider)):
    return see_other("/login")


def _sets_cookie(response: Response, name: str) -> bool:
    prefix = f"{name}=".encode()
    return any(k == b"set-cookie" and v.startswith(prefix) for k, v in response.raw_headers)


# ---------- outcome handlers ----------

def _auth_failed(ctx: CallbackContext) -> Response:
    return redirect_with_toast(
        "/login",
        Toast(
            type="error",
            title="Auth Failed",
            description=f"There was an error authenticating with {ctx.provider.label}.",
        ),
    )


def _already_linked(ctx: CallbackContext) -> Response:
    return redirect_with_toast(
        CONNECTIONS_URL,
        Toast(
            title="Already Connected",
            description=f'Your "{ctx.display_name}" {ctx.provider.label} account is already connected.',
        ),
    )


def _already_linked_conflict(ctx: CallbackContext) -> Response:
    return redirect_with_toast(
        CONNECTIONS_URL,
        Toast(
            type="error",
            title="Already Connected",
            description=f'The "{ctx.display_name}" {ctx.provider.label} account is already connected to another account.',
        ),
    )


def _connected_toast(ctx: CallbackContext) -> Toast:
    return Toast(
        type="success",
        title="Connected",
        description=f'Your "{ctx.display_name}" {ctx.provider.label} account has been connected.',
    )


def _linked_login(ctx: CallbackContext) -> Response:
    session = sessions.create_session(ctx.db, ctx.decision.user_id)
    return handle_new_session(ctx.db, session, remember=True, redirect_to=ctx.redirect_to)


def _link_to_current_user(ctx: CallbackContext) -> Response:
    try:
        create_connection(
            ctx.db,
            user_id=ctx.decision.user_id,
            provider_name=ctx.provider.name,
            provider_id=ctx.profile.id,
        )
    except ConnectionConflict:
        return _already_linked_conflict(ctx)
    return redirect_with_toast(CONNECTIONS_URL, _connected_toast(ctx))


def _link_to_email_match(ctx: CallbackContext) -> Response:
    try:
        create_connection(
            ctx.db,
            user_id=ctx.decision.user_id,
            provider_name=ctx.provider.name,
            provider_id=ctx.profile.id,
        )
    except ConnectionConflict:
        return _auth_failed(ctx)
    session = sessions.create_session(ctx.db, ctx.decision.user_id)
    response = handle_new_session(ctx.db, session, remember=True, redirect_to=CONNECTIONS_URL)
    set_toast(response, _connected_toast(ctx))
    return response


def _needs_onboarding(ctx: CallbackContext) -> Response:
    url = f"/onboarding/{ctx.provider.name}"
    if ctx.redirect_to:
        url += "?" + urlencode({"redirectTo": ctx.redirect_to})
    response = see_other(url)
    verify_cookie.save(
        response,
        OnboardingState(
            email=ctx.profile.email,
            prefilled_profile=ctx.profile,
            provider_id=ctx.profile.id,
            provider_name=ctx.provider.name,
        ),
    )
    return response


_OUTCOME_HANDLERS: Dict[OAuthOutcome, Callable[[CallbackContext], Response]] = {
    OAuthOutcome.PROVIDER_AUTH_FAILED: _auth_failed,
    OAuthOutcome.ALREADY_LINKED: _already_linked,
    OAuthOutcome.ALREADY_LINKED_CONFLICT: _already_linked_conflict,
    OAuthOutcome.LINKED_LOGIN: _linked_login,
    OAuthOutcome.LINK_TO_CURRENT_USER: _link_to_current_user,
    OAuthOutcome.LINK_TO_EMAIL_MATCH: _link_to_email_match,
    OAuthOutcome.NEEDS_ONBOARDING: _needs_onboarding,
}


@router.get("/auth/{provider}/callback")
def provider_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    provider: GitHubProvider = Depends(get_provider),
    db: Session = Depends(get_db),
):
    stored = connection_cookie.read(request) or {}
    redirect_to = (redirect_to_cookie.read(request) or {}).get("to")

    profile: Optional[ProviderProfile] = None
    stale = False
    if not state or state != stored.get("state"):
        logger.warning("%s callback with mismatched state", provider.name)
        decision = OAuthDecision(OAuthOutcome.PROVIDER_AUTH_FAILED)
    else:
        try:
            profile = provider.authenticate(code)
        except ProviderAuthError as e:
            logger.warning("%s authentication failed: %s", provider.name, e)
            decision = OAuthDecision(OAuthOutcome.PROVIDER_AUTH_FAILED)
        else:
            try:
                current_user_id = get_user_id(db, request)
            except StaleSession:
                current_user_id = None
                stale = True
            decision = decide(db, provider_name=provider.name, profile=profile, current_user_id=current_user_id)

    logger.info("%s callback outcome=%s", provider.name, decision.outcome.value)
    ctx = CallbackContext(db, provider, profile, decision, redirect_to)
    response = _OUTCOME_HANDLERS[decision.outcome](ctx)

    redirect_to_cookie.destroy(response)
    connection_cookie.destroy(response)
    if stale and not _sets_cookie(response, session_cookie.name):
        session_cookie.destroy(response)
    return response


@router.get("/onboarding/{provider}")
def provider_onboarding_page(
    request: Request,
    provider: GitHubProvider = Depends(get_provider),
    db: Session = Depends(get_db),
):
    require_anonymous(db, request)
    state = verify_cookie.load(request, OnboardingState)
    if state is None or state.provider_name != provider.name:
        return see_other("/login")
    profile = state.prefilled_profile
    return {
        "email": state.email,
        "username": profile.username if profile else None,
        "name": profile.name if profile else None,
        "imageUrl": profile.image_url if profile else None,
    }


@router.post("/onboarding/{provider}", dependencies=[Depends(validate_csrf)])
def provider_onboarding(
    payload: ProviderOnboardingIn,
    request: Request,
    provider: GitHubProvider = Depends(get_provider),
    db: Session = Depends(get_db),
):
    require_anonymous(db, request)
    state = verify_cookie.load(request, OnboardingState)
    if state is None or state.provider_name != provider.name or not state.provider_id:
        return see_other("/login")
    if sessions.get_user_by_username(db, payload.username):
        return form_error({"username": ["A user already exists with this username"]})
    if sessions.get_user_by_email(db, state.email):
        return form_error({"": ["A user already exists with this email"]})

    session = sessions.signup_with_connection(
        db,
        email=state.email,
        username=payload.username,
        name=payload.name,
        provider_name=provider.name,
        provider_id=state.provider_id,
    )
    response = see_other(safe_redirect(payload.redirect_to))
    commit_session(response, session, remember=payload.remember)
    verify_cookie.destroy(response)
    set_toast(response, Toast(title="Welcome", description="Thanks for signing up!", type="success"))
    return response
