# notes_app/core/config.py
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./notes.db"

    # cookies are JWTs signed with this secret
    SESSION_SECRET: str = "change-this-secret"
    JWT_ALG: str = "HS256"
    COOKIE_SECURE: bool = False

    SESSION_EXPIRATION_DAYS: int = 30
    VERIFICATION_PERIOD_SECONDS: int = 10 * 60
    TWO_FA_ENROLLMENT_SECONDS: int = 10 * 60
    TWO_FA_ISSUER: str = "Epic Notes"

    APP_URL: str = "http://localhost:3000"
    # comma separated
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    # MOCK_ prefix skips the real GitHub round trip
    GITHUB_CLIENT_ID: str = "MOCK_GITHUB_CLIENT_ID"
    GITHUB_CLIENT_SECRET: str = "MOCK_GITHUB_CLIENT_SECRET"

    # empty -> emails are logged instead of sent
    RESEND_API_KEY: str = ""
    EMAIL_FROM: str = "hello@epicstack.dev"

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
