# notes_app/utils/cookies.py
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Type, TypeVar

from fastapi import Request, Response
from pydantic import BaseModel, ValidationError

from notes_app.core.config import settings
from notes_app.core.security import decode_signed, encode_signed

S = TypeVar("S", bound=BaseModel)


class SignedCookie:
    """A cookie whose value is a signed JWT holding a small dict."""

    def __init__(self, name: str, *, purpose: str, max_age: Optional[int] = None):
        self.name = name
        self.purpose = purpose
        self.max_age = max_age

    def read(self, request: Request) -> Optional[Dict[str, Any]]:
        return decode_signed(self.purpose, request.cookies.get(self.name))

    def commit(self, response: Response, data: Dict[str, Any], *, expires: Optional[datetime] = None) -> None:
        # expires is naive UTC like the rest of the app; starlette wants an aware value
        if expires is not None and expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        response.set_cookie(
            key=self.name,
            value=encode_signed(self.purpose, data, self.max_age),
            max_age=self.max_age,
            expires=expires,
            path="/",
            httponly=True,
            secure=settings.COOKIE_SECURE,
            samesite="lax",
        )

    def destroy(self, response: Response) -> None:
        response.delete_cookie(
            key=self.name,
            path="/",
            httponly=True,
            secure=settings.COOKIE_SECURE,
            samesite="lax",
        )


class FlowStateCookie(SignedCookie):
    """
    Holds exactly one typed flow state (onboarding, password reset, ...).

    Saving a new state replaces the previous one; loading with the wrong
    model returns None.
    """

    def save(self, response: Response, state: BaseModel) -> None:
        self.commit(response, {"kind": type(state).__name__, "state": state.model_dump(mode="json")})

    def load(self, request: Request, model: Type[S]) -> Optional[S]:
        data = self.read(request)
        if not data or data.get("kind") != model.__name__:
            return None
        try:
            return model.model_validate(data.get("state") or {})
        except ValidationError:
            return None


session_cookie = SignedCookie("en_session", purpose="session")
verify_cookie = FlowStateCookie("en_verification", purpose="verification", max_age=60 * 10)
# redirect target + oauth state, set right before leaving for the provider
connection_cookie = SignedCookie("en_connection", purpose="connection", max_age=60 * 10)
redirect_to_cookie = SignedCookie("redirectTo", purpose="redirect-to", max_age=60 * 10)
toast_cookie = SignedCookie("en_toast", purpose="toast", max_age=60)
