# notes_app/schemas/user.py
from datetime import datetime
from typing import List, Optional

from pydantic import model_validator

from .base import BaseSchema
from .fields import Email, OTPCode, Password


class UserOut(BaseSchema):
    id: str
    username: str
    email: str
    name: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ProfileOut(BaseSchema):
    user: UserOut
    active_sessions: int
    is_two_fa_enabled: bool


class ChangePasswordIn(BaseSchema):
    current_password: Password
    new_password: Password
    confirm_new_password: Password

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.new_password != self.confirm_new_password:
            raise ValueError("The passwords must match")
        return self


class ChangeEmailIn(BaseSchema):
    email: Email


class TwoFactorStatusOut(BaseSchema):
    is_two_fa_enabled: bool


class TwoFactorSetupOut(BaseSchema):
    otp_uri: str
    secret: str


class TwoFactorVerifyIn(BaseSchema):
    code: OTPCode


class ConnectionOut(BaseSchema):
    id: str
    provider_name: str
    provider_id: str
    display_name: str
    created_at: datetime


class ConnectionsOut(BaseSchema):
    connections: List[ConnectionOut]
    can_delete_connections: bool
