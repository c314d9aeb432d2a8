# notes_app/services/providers.py
"""
OAuth identity providers.

Only GitHub for now. With a ``MOCK_`` client id the provider never leaves the
process: the start step redirects straight to the callback and the callback
turns the mock code into a fixed profile.
"""

import hashlib
from typing import Dict, Optional
from urllib.parse import urlencode

import requests
from fastapi import HTTPException

from notes_app.core.config import settings
from notes_app.core.logging import get_logger
from notes_app.schemas.flow import ProviderProfile

logger = get_logger(__name__)

GITHUB_PROVIDER_NAME = "github"
PROVIDER_LABELS: Dict[str, str] = {GITHUB_PROVIDER_NAME: "GitHub"}
MOCK_CODE_PREFIX = "MOCK_GITHUB_CODE_"


class ProviderAuthError(Exception):
    """Token exchange or profile fetch failed."""


class GitHubProvider:
    name = GITHUB_PROVIDER_NAME
    label = PROVIDER_LABELS[GITHUB_PROVIDER_NAME]

    def __init__(self, client_id: str, client_secret: str, app_url: str):
        self.client_id = client_id
        self.client_secret = client_secret
        self.app_url = app_url.rstrip("/")

    @property
    def is_mock(self) -> bool:
        return self.client_id.startswith("MOCK_")

    @property
    def callback_url(self) -> str:
        return f"{self.app_url}/auth/{self.name}/callback"

    def authorize_url(self, state: str) -> str:
        if self.is_mock:
            return f"/auth/{self.name}/callback?" + urlencode({"code": f"{MOCK_CODE_PREFIX}KODY", "state": state})
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.callback_url,
            "scope": "user:email",
            "state": state,
        }
        return "https://github.com/login/oauth/authorize?" + urlencode(params)

    def authenticate(self, code: Optional[str]) -> ProviderProfile:
        if not code:
            raise ProviderAuthError("missing code")
        if self.is_mock:
            return self._mock_profile(code)

        try:
            token_res = requests.post(
                "https://github.com/login/oauth/access_token",
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "code": code,
                    "redirect_uri": self.callback_url,
                },
                headers={"Accept": "application/json"},
                timeout=10,
            )
            access_token = token_res.json().get("access_token")
            if not access_token:
                raise ProviderAuthError("no access token")
            auth_headers = {"Authorization": f"Bearer {access_token}", "Accept": "application/json"}
            user = requests.get("https://api.github.com/user", headers=auth_headers, timeout=10).json()
            email = user.get("email")
            if not email:
                # private email, ask for the primary one
                emails = requests.get("https://api.github.com/user/emails", headers=auth_headers, timeout=10).json()
                primary = next((e for e in emails if e.get("primary")), None)
                email = primary.get("email") if primary else None
        except (requests.RequestException, ValueError) as e:
            raise ProviderAuthError(str(e)) from e

        if not user.get("id") or not email:
            raise ProviderAuthError("incomplete profile")
        return ProviderProfile(
            id=str(user["id"]),
            email=email.lower(),
            username=user.get("login"),
            name=user.get("name"),
            image_url=user.get("avatar_url"),
        )

    def _mock_profile(self, code: str) -> ProviderProfile:
        if not code.startswith(MOCK_CODE_PREFIX):
            raise ProviderAuthError("unknown mock code")
        handle = code[len(MOCK_CODE_PREFIX):].lower() or "kody"
        return ProviderProfile(
            id=hashlib.sha256(code.encode()).hexdigest()[:16],
            email=f"{handle}@kcd.dev",
            username=handle,
            name=handle.title(),
        )


def get_provider(provider: str) -> GitHubProvider:
    """Path-parameter dependency; unknown provider names are a 404."""
    if provider != GITHUB_PROVIDER_NAME:
        raise HTTPException(status_code=404, detail="unknown_provider")
    return GitHubProvider(settings.GITHUB_CLIENT_ID, settings.GITHUB_CLIENT_SECRET, settings.APP_URL)
