# notes_app/schemas/flow.py
"""Typed state carried in the verification cookie, one model per flow."""

from typing import Optional

from pydantic import BaseModel


class ProviderProfile(BaseModel):
    id: str
    email: str
    username: Optional[str] = None
    name: Optional[str] = None
    image_url: Optional[str] = None


class OnboardingState(BaseModel):
    email: str
    # only set when onboarding starts from an OAuth provider
    prefilled_profile: Optional[ProviderProfile] = None
    provider_id: Optional[str] = None
    provider_name: Optional[str] = None


class ResetPasswordState(BaseModel):
    username: str


class ChangeEmailState(BaseModel):
    new_email: str


class TwoFactorLoginState(BaseModel):
    unverified_session_id: str
    remember: bool = False
