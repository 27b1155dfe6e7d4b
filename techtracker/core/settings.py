"""Environment-driven configuration.

Every knob the service reads lives on ``AppSettings``. Values come from the
process environment first, then ``.env``/``.env.local`` in the working
directory, then the defaults below, which are good enough to boot a local
SQLite instance.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .security import PASSWORD_MAX_BYTES, password_fits


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "TechTracker"
    APP_ENV: str = "dev"

    # An empty URL is allowed on purpose: the app still boots and reports a
    # configuration hint on every storage call instead of crashing at import.
    DB_URL: str = Field(
        default="sqlite:///./techtracker.db",
        validation_alias=AliasChoices("DATABASE_URL", "DB_URL"),
    )

    # ---- Browser sessions (sealed cookie)
    SESSION_SECRET: str = "dev-insecure-secret-change-me"
    SESSION_COOKIE_NAME: str = "techtracker-auth-session"
    SESSION_MAX_AGE: int = 60 * 60 * 24 * 7
    SESSION_HTTPS_ONLY: bool = False

    # ---- Headless clients (bearer tokens)
    JWT_SECRET: str = "change-me"
    JWT_ACCESS_TTL_MIN: int = 60

    # First admin account, created at startup only when no admin exists yet.
    BOOTSTRAP_ADMIN_USERNAME: str = ""
    BOOTSTRAP_ADMIN_PASSWORD: str = ""
    BOOTSTRAP_ADMIN_DEPARTMENT: str = "IT"

    LOG_LEVEL: str = "INFO"
    METRICS_ENABLED: bool = True

    @field_validator("BOOTSTRAP_ADMIN_PASSWORD")
    @classmethod
    def _bootstrap_password_fits_bcrypt(cls, value: str) -> str:
        if not password_fits(value):
            raise ValueError(f"BOOTSTRAP_ADMIN_PASSWORD must be at most {PASSWORD_MAX_BYTES} bytes when UTF-8 encoded")
        return value

    @property
    def storage_configured(self) -> bool:
        return bool(self.DB_URL.strip())

    @property
    def bootstrap_admin_enabled(self) -> bool:
        return bool(self.BOOTSTRAP_ADMIN_USERNAME.strip() and self.BOOTSTRAP_ADMIN_PASSWORD)


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings()
