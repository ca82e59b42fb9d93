"""Application settings for the userhub HTTP service.

Provides Pydantic Settings for FastAPI metadata, the listen address and
CORS policy.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from userhub import __version__


class CORSSettings(BaseSettings):
    """CORS policy configuration.

    Environment variables use the ``CORS_`` prefix (e.g., ``CORS_ALLOW_ORIGINS``).
    Comma-separated strings are parsed into lists.
    """

    model_config = SettingsConfigDict(env_prefix="CORS_", extra="ignore")

    allow_origins: Annotated[list[str], NoDecode] = Field(default=["*"])
    allow_methods: Annotated[list[str], NoDecode] = Field(default=["*"])
    allow_headers: Annotated[list[str], NoDecode] = Field(default=["*"])
    allow_credentials: bool = Field(default=False)
    expose_headers: Annotated[list[str], NoDecode] = Field(default=["X-Request-ID"])

    @field_validator(
        "allow_origins",
        "allow_methods",
        "allow_headers",
        "expose_headers",
        mode="before",
    )
    @classmethod
    def _parse_comma_separated(cls, v: Any) -> list[str]:
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        if isinstance(v, list):
            return v
        return ["*"]

    @model_validator(mode="after")
    def _validate_credentials_with_wildcard(self) -> CORSSettings:
        if self.allow_credentials and self.allow_origins == ["*"]:
            msg = "CORS allow_credentials=True requires explicit allow_origins, not '*'"
            raise ValueError(msg)
        return self


class AppSettings(BaseSettings):
    """HTTP service settings.

    Environment variables use the ``APP_`` prefix. ``APP_PORT`` is
    required; the service refuses to start without it.
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="0.0.0.0", description="Listen address")  # noqa: S104
    port: int = Field(..., ge=1, le=65535, description="Listen port")

    title: str = Field(default="Userhub")
    version: str = Field(default=__version__)
    description: str = Field(default="User management service")
    docs_url: str | None = Field(default="/docs")
    redoc_url: str | None = Field(default="/redoc")
    openapi_url: str | None = Field(default="/openapi.json")
    debug: bool = Field(default=False)
    cors: CORSSettings = Field(default_factory=CORSSettings)


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """Return cached AppSettings loaded from the environment."""
    return AppSettings()  # type: ignore[call-arg]
