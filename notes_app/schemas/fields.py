# notes_app/schemas/fields.py
import re
from typing import Annotated

from pydantic import AfterValidator, EmailStr, Field


_USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")


def _username(v: str) -> str:
    if not _USERNAME_RE.match(v):
        raise ValueError("Username can only include letters, numbers, and underscores")
    return v.lower()


Username = Annotated[str, Field(min_length=3, max_length=20), AfterValidator(_username)]
Password = Annotated[str, Field(min_length=6, max_length=100)]
Name = Annotated[str, Field(min_length=3, max_length=40)]
Email = Annotated[EmailStr, AfterValidator(lambda v: v.lower())]
OTPCode = Annotated[str, Field(min_length=6, max_length=6)]
