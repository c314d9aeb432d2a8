# notes_app/schemas/auth.py
from typing import Optional, Union

from pydantic import model_validator

from .base import BaseSchema
from .fields import Email, Name, OTPCode, Password, Username


class LoginIn(BaseSchema):
    username: Username
    password: Password
    remember: bool = False
    redirect_to: Optional[str] = None


class SignupIn(BaseSchema):
    email: Email
    redirect_to: Optional[str] = None


class _NewPasswordMixin(BaseSchema):
    password: Password
    confirm_password: Password

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("The passwords must match")
        return self


class ProviderOnboardingIn(BaseSchema):
    username: Username
    name: Name
    agree_to_terms_of_service_and_privacy_policy: bool
    remember: bool = False
    redirect_to: Optional[str] = None

    @model_validator(mode="after")
    def _must_agree(self):
        if not self.agree_to_terms_of_service_and_privacy_policy:
            raise ValueError("You must agree to the terms of service and privacy policy")
        return self


class OnboardingIn(_NewPasswordMixin, ProviderOnboardingIn):
    pass


class ForgotPasswordIn(BaseSchema):
    username_or_email: Union[Email, Username]


class ResetPasswordIn(_NewPasswordMixin):
    pass


class VerifyIn(BaseSchema):
    type: str
    target: str
    code: OTPCode
    redirect_to: Optional[str] = None


class ProviderStartIn(BaseSchema):
    redirect_to: Optional[str] = None
