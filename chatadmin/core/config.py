from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, Iterable

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _split_csv(value: Any, name: str) -> list[str]:
    if value in (None, "", []):
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, Iterable):
        return [str(item).strip() for item in value if str(item).strip()]
    raise TypeError(f"{name} must be a comma separated string or list")


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Telldemm Admin"
    APP_ENV: str = "development"
    BASE_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parent.parent)
    TEMPLATES_DIR: Path | None = None
    STATIC_DIR: Path | None = None
    TZ: str = "Asia/Kolkata"
    LOG_LEVEL: str = "INFO"

    # Flash messages live in a signed Starlette session cookie.
    APP_SECRET: str = "dev-insecure-secret-change-me"

    ADMIN_API_BASE: str = Field(
        default="https://apps.ekarigar.com/backend",
        validation_alias=AliasChoices("ADMIN_API_BASE", "API_BASE_URL"),
    )
    API_TIMEOUT_SECONDS: float = 10.0
    NOTIFICATIONS_LEGACY_ROUTES: bool = False

    SESSION_COOKIE_NAME: str = "auth_token"
    SESSION_MAX_AGE: int = 60 * 60 * 24
    LOGIN_PATH: str = "/Login"

    GATE_STRICT_ASSETS: bool = False
    GATE_PROTECTED_PREFIXES: Annotated[list[str], NoDecode] = Field(default_factory=list)
    GATE_EXEMPT_PREFIXES: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["/api/", "/health", "/metrics"])
    PUBLIC_ASSET_PREFIXES: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["/static/", "/favicon.ico"])

    HOST: str = "0.0.0.0"
    PORT: int = 8089

    def _resolve_path(self, base: Path | None, fallback: Path) -> Path:
        return base if base is not None else fallback

    @property
    def templates_dir(self) -> Path:
        return self._resolve_path(self.TEMPLATES_DIR, self.BASE_DIR / "templates")

    @property
    def static_dir(self) -> Path:
        return self._resolve_path(self.STATIC_DIR, self.BASE_DIR / "static")

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.lower() in {"prod", "production"}

    @property
    def api_base_url(self) -> str:
        return self.ADMIN_API_BASE.rstrip("/")

    @field_validator("GATE_PROTECTED_PREFIXES", "GATE_EXEMPT_PREFIXES", "PUBLIC_ASSET_PREFIXES", mode="before")
    @classmethod
    def parse_prefix_lists(cls, value: Any, info) -> list[str]:
        return _split_csv(value, info.field_name)


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    settings = AppSettings()
    if settings.TEMPLATES_DIR is None:
        settings.TEMPLATES_DIR = settings.templates_dir
    if settings.STATIC_DIR is None:
        settings.STATIC_DIR = settings.static_dir
    return settings


settings = get_settings()


def settings_for(request: Any) -> AppSettings:
    """Settings the serving app was built with, falling back to the module defaults."""

    return getattr(request.app.state, "settings", None) or settings
