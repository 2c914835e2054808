from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_AUTH_SECRET = "default-secret-change-me"

_REPO_ROOT = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """
    App settings, overridable with `PORTAL_`-prefixed env vars.

    Defaults are local and deterministic: a SQLite file and the YAML security
    config next to the repo, the `dummy` identity provider from that config,
    and a demo directory seeded on first start. `auth_secret` keys the session
    cookie (AES key and HMAC); production must set it.
    """

    model_config = SettingsConfigDict(env_prefix="PORTAL_", extra="ignore")

    db_url: str | None = None
    security_config_path: Path | None = None
    log_level: str = "INFO"

    auth_secret: str = DEFAULT_AUTH_SECRET
    session_scheme: Literal["aes-cbc-hmac", "aes-gcm"] = "aes-cbc-hmac"
    cookie_secure: bool = False

    seed_demo_data: bool = True

    def resolved_db_url(self) -> str:
        return self.db_url or f"sqlite:///{_REPO_ROOT / 'portal.db'}"

    def resolved_security_config_path(self) -> Path:
        return self.security_config_path or _REPO_ROOT / "config" / "security_config.yaml"

    def uses_default_secret(self) -> bool:
        return self.auth_secret == DEFAULT_AUTH_SECRET


@lru_cache
def get_settings() -> Settings:
    return Settings()
