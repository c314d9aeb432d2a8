# notes_app/services/oauth.py
"""
Decide what an OAuth callback means for the current request.

``decide`` only reads; the callback route maps each outcome to exactly one
handler that performs the writes (session, connection, onboarding state).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from notes_app.models.user import User
from notes_app.schemas.flow import ProviderProfile
from notes_app.services.connections import get_connection


class OAuthOutcome(str, Enum):
    LINKED_LOGIN = "linked-login"
    ALREADY_LINKED = "already-linked"
    ALREADY_LINKED_CONFLICT = "already-linked-conflict"
    LINK_TO_CURRENT_USER = "link-to-current-user"
    LINK_TO_EMAIL_MATCH = "link-to-email-match"
    NEEDS_ONBOARDING = "needs-onboarding"
    PROVIDER_AUTH_FAILED = "provider-auth-failed"


@dataclass(frozen=True)
class OAuthDecision:
    outcome: OAuthOutcome
    # the user the outcome acts on, when there is one
    user_id: Optional[str] = None


def decide(db: Session, *, provider_name: str, profile: ProviderProfile, current_user_id: Optional[str]) -> OAuthDecision:
    connection = get_connection(db, provider_name=provider_name, provider_id=profile.id)

    if connection is not None:
        if current_user_id is None:
            return OAuthDecision(OAuthOutcome.LINKED_LOGIN, connection.user_id)
        if connection.user_id == current_user_id:
            return OAuthDecision(OAuthOutcome.ALREADY_LINKED, current_user_id)
        return OAuthDecision(OAuthOutcome.ALREADY_LINKED_CONFLICT, current_user_id)

    if current_user_id is not None:
        return OAuthDecision(OAuthOutcome.LINK_TO_CURRENT_USER, current_user_id)

    user = db.query(User).filter(func.lower(User.email) == profile.email.lower()).first()
    if user is not None:
        return OAuthDecision(OAuthOutcome.LINK_TO_EMAIL_MATCH, user.id)

    return OAuthDecision(OAuthOutcome.NEEDS_ONBOARDING)
