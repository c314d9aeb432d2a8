# notes_app/utils/redirects.py
from typing import Optional

from fastapi import status
from fastapi.responses import RedirectResponse


def safe_redirect(to: Optional[str], default: str = "/") -> str:
    """Only same-site absolute paths; anything else falls back to ``default``."""
    if not to or not isinstance(to, str):
        return default
    to = to.strip()
    if not to.startswith("/") or to.startswith("//") or to.startswith("/\\"):
        return default
    return to


def see_other(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)
