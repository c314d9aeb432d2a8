# notes_app/core/csrf.py
from fastapi import Depends, HTTPException, Request, Response, status
from fastapi_csrf_protect import CsrfProtect
from fastapi_csrf_protect.exceptions import CsrfProtectError
from pydantic import BaseModel

from notes_app.core.config import settings
from notes_app.core.logging import get_logger

logger = get_logger(__name__)

CSRF_HEADER = "X-CSRF-Token"


class CsrfSettings(BaseModel):
    secret_key: str = settings.SESSION_SECRET
    cookie_key: str = "csrf"
    header_name: str = CSRF_HEADER
    cookie_samesite: str = "lax"
    cookie_secure: bool = settings.COOKIE_SECURE
    httponly: bool = True


@CsrfProtect.load_config
def get_csrf_config():
    return CsrfSettings()


def issue_csrf_token(response: Response, csrf_protect: CsrfProtect) -> str:
    """Plain token for the client, signed copy in the cookie."""
    token, signed_token = csrf_protect.generate_csrf_tokens()
    csrf_protect.set_csrf_cookie(signed_token, response)
    return token


async def validate_csrf(request: Request, csrf_protect: CsrfProtect = Depends()) -> None:
    try:
        await csrf_protect.validate_csrf(request)
    except CsrfProtectError as e:
        logger.info("csrf check failed on %s %s: %s", request.method, request.url.path, e.message)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="invalid_csrf_token") from e
