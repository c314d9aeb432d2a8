# notes_app/core/errors.py
from typing import Dict, List, Optional
from urllib.parse import urlencode

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError

from notes_app.core.logging import get_logger
from notes_app.utils.cookies import session_cookie

logger = get_logger(__name__)


class Unauthenticated(Exception):
    """No valid session. Answered with a redirect to /login."""

    def __init__(self, redirect_to: Optional[str] = None):
        super().__init__("unauthenticated")
        self.redirect_to = redirect_to

    @property
    def login_url(self) -> str:
        if not self.redirect_to:
            return "/login"
        return "/login?" + urlencode({"redirectTo": self.redirect_to})


class StaleSession(Exception):
    """The session cookie points at a session that is expired, deleted or orphaned."""


class AlreadyAuthenticated(Exception):
    """Anonymous-only route hit with a valid session."""


class Unauthorized(Exception):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)
        self.message = message


class InvalidOrExpiredCode(Exception):
    """Verification lookup missed or the code did not match. Deliberately says nothing more."""


class ConnectionConflict(Exception):
    """The external identity is already linked to a different user."""

    def __init__(self, provider_name: str, provider_id: str):
        super().__init__(f"{provider_name}:{provider_id} already connected")
        self.provider_name = provider_name
        self.provider_id = provider_id


def form_error(errors: Dict[str, List[str]], status_code: int = status.HTTP_400_BAD_REQUEST) -> JSONResponse:
    return JSONResponse({"status": "error", "errors": errors}, status_code=status_code)


def _validation_errors(exc: RequestValidationError) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        # union members add entries to loc; keep the field name
        field = loc[0] if loc else ""
        msg = str(err.get("msg", "Invalid value"))
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        errors.setdefault(field, []).append(msg)
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(Unauthenticated)
    async def _unauthenticated(request: Request, exc: Unauthenticated):
        return RedirectResponse(exc.login_url, status_code=status.HTTP_303_SEE_OTHER)

    @app.exception_handler(StaleSession)
    async def _stale_session(request: Request, exc: StaleSession):
        response = RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)
        session_cookie.destroy(response)
        return response

    @app.exception_handler(AlreadyAuthenticated)
    async def _already_authenticated(request: Request, exc: AlreadyAuthenticated):
        return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)

    @app.exception_handler(Unauthorized)
    async def _unauthorized(request: Request, exc: Unauthorized):
        return JSONResponse({"detail": exc.message}, status_code=status.HTTP_403_FORBIDDEN)

    @app.exception_handler(InvalidOrExpiredCode)
    async def _invalid_code(request: Request, exc: InvalidOrExpiredCode):
        return form_error({"code": ["Invalid code"]})

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError):
        return form_error(_validation_errors(exc))

    @app.exception_handler(SQLAlchemyError)
    async def _storage_failure(request: Request, exc: SQLAlchemyError):
        logger.error("storage failure on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse({"detail": "internal_error"}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
