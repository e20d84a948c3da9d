"""Configuration management for the case chat backend and client.

Loads environment variables (from a local .env file or the exported shell
environment). Kept lightweight using pydantic BaseSettings.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List, Optional
import logging


class Settings(BaseSettings):
    backend_port: int = Field(3000, alias="BACKEND_PORT")
    backend_log_level: str = Field("info", alias="BACKEND_LOG_LEVEL")
    backend_allow_all_origins: bool = Field(True, alias="BACKEND_ALLOW_ALL_ORIGINS")
    frontend_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:8080", "http://127.0.0.1:8080"],
        alias="FRONTEND_ORIGINS",
    )

    # Remote workflow backend the /webhook/* routes forward to.
    webhook_base_url: str = Field("http://localhost:5678/webhook", alias="WEBHOOK_BASE_URL")
    # Base the client library talks to; either the proxy or the workflow backend directly.
    api_base_url: str = Field("http://localhost:5678/webhook", alias="API_BASE_URL")
    webhook_timeout_seconds: float = Field(30.0, alias="WEBHOOK_TIMEOUT_SECONDS")

    ping_message: str = Field("ping", alias="PING_MESSAGE")
    app_env: str = Field("development", alias="APP_ENV")
    spa_dir: Optional[str] = Field(None, alias="SPA_DIR")

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    s = Settings()  # type: ignore
    logging.getLogger(__name__).info(
        "Loaded settings webhook_base_url=%s env=%s", s.webhook_base_url, s.app_env
    )
    return s


def build_api_url(path: str, base_url: Optional[str] = None) -> str:
    """Join ``path`` onto the configured API base without doubling slashes."""
    base = (base_url or get_settings().api_base_url).rstrip("/")
    clean_path = path[1:] if path.startswith("/") else path
    return f"{base}/{clean_path}"
