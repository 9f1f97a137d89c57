from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel, Field

DEFAULT_WSDL_URL = "https://www.web2sms.ro/wsi/service.php?wsdl"


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str) -> float | None:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else None


class Settings(BaseModel):
    # Env vars are read when Settings() is built (not at import), so tests can
    # monkeypatch them and call get_settings.cache_clear().

    # Service description of the gateway; only override for a sandbox endpoint.
    wsdl_url: str = Field(default_factory=lambda: os.getenv("WEB2SMS_WSDL_URL", DEFAULT_WSDL_URL))

    # --- Account credentials ---
    # Auth-key mode uses username + auth_key, simple mode and sessions use
    # username + password.
    username: str = Field(default_factory=lambda: os.getenv("WEB2SMS_USERNAME", ""))
    password: str = Field(default_factory=lambda: os.getenv("WEB2SMS_PASSWORD", ""))
    auth_key: str = Field(default_factory=lambda: os.getenv("WEB2SMS_AUTH_KEY", ""))

    # --- Message defaults ---
    sender: str = Field(default_factory=lambda: os.getenv("WEB2SMS_SENDER", ""))
    callback_url: str | None = Field(
        default_factory=lambda: os.getenv("WEB2SMS_CALLBACK_URL") or None
    )
    is_unicode: bool = Field(default_factory=lambda: _env_flag("WEB2SMS_UNICODE"))
    # minutes; 0 lets the gateway apply its own default
    validity: int = Field(default_factory=lambda: _env_int("WEB2SMS_VALIDITY", 0))

    # Transport timeout in seconds (None = zeep's default)
    timeout: float | None = Field(default_factory=lambda: _env_float("WEB2SMS_TIMEOUT"))


@lru_cache
def get_settings() -> Settings:
    return Settings()
