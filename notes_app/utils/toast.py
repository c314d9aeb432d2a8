# notes_app/utils/toast.py
from typing import Literal, Optional

from fastapi import Request, Response
from pydantic import BaseModel

from notes_app.utils.cookies import toast_cookie
from notes_app.utils.redirects import see_other


class Toast(BaseModel):
    title: Optional[str] = None
    description: str
    type: Literal["message", "success", "error"] = "message"


def set_toast(response: Response, toast: Toast) -> None:
    toast_cookie.commit(response, toast.model_dump())


def redirect_with_toast(url: str, toast: Toast) -> Response:
    response = see_other(url)
    set_toast(response, toast)
    return response


def pop_toast(request: Request, response: Response) -> Optional[Toast]:
    data = toast_cookie.read(request)
    if data is None:
        return None
    toast_cookie.destroy(response)
    return Toast.model_validate(data)
