"""
Runtime configuration.

Loaded with pydantic-settings from environment variables prefixed with
``PBAPI_`` and from a ``.env`` file in the working directory. List values
are given as JSON, e.g. ``PBAPI_ENABLED_PLUGINS='["pathbuilder_api_v0"]'``.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PBAPI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # routes are served under <api_prefix>/v<version>
    api_prefix: str = "/api"
    enabled_plugins: list[str] = ["pathbuilder_api_v0", "pathbuilder_api_v1"]
    # looked up before the descriptions shipped with the package
    descriptions_dir: Optional[Path] = None

    read_permission: str = "pbapi.read"
    write_permission: str = "pbapi.write"

    response_caching: bool = False
    cache_max_age: int = 60

    log_level: LogLevel = "INFO"
    swagger_ui_url: str = "https://unpkg.com/swagger-ui-dist@5"

    @field_validator("api_prefix")
    @classmethod
    def _normalize_prefix(cls, v: str) -> str:
        v = "/" + v.strip().strip("/")
        return v if v != "/" else ""

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, v: object) -> object:
        return v.upper() if isinstance(v, str) else v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
