"""Structured logging configuration using structlog.

Provides environment-aware structured logging:
- JSON lines in production, colored console output elsewhere
- Request id merged from context variables (see RequestIdMiddleware)
- Redaction of credential-like fields before rendering
- Stdlib ``logging`` (uvicorn, SQLAlchemy, aio-pika) routed at the same level

Usage:
    from userhub.infra.observability import configure_logging, get_logger

    configure_logging()
    logger = get_logger(__name__)
    logger.info("user_created", user_id="4b1c...")
"""

from __future__ import annotations

import logging
import sys
from functools import lru_cache
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from collections.abc import MutableMapping

Processor = structlog.types.Processor

# Exact-match keys; any key containing "password" or "token" is redacted too.
SENSITIVE_FIELDS: frozenset[str] = frozenset(
    {
        "password",
        "password_hash",
        "hashed_password",
        "token",
        "authorization",
        "secret",
        "credential",
        "credentials",
        "bearer",
    }
)

REDACTED_VALUE: str = "***REDACTED***"

_VALID_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class LoggingSettings(BaseSettings):
    """Logging configuration from ``LOG_LEVEL`` and ``ENVIRONMENT``.

    Attributes:
        log_level: Minimum level emitted. Default: INFO.
        environment: Deployment name; ``production`` switches to JSON output.
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        populate_by_name=True,
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    environment: str = Field(default="development", alias="ENVIRONMENT")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> str:
        return str(v).upper()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        if v not in _VALID_LEVELS:
            msg = f"log_level must be one of {sorted(_VALID_LEVELS)}"
            raise ValueError(msg)
        return v

    @property
    def use_json_logs(self) -> bool:
        return self.environment == "production"

    @property
    def log_level_int(self) -> int:
        return logging.getLevelNamesMapping()[self.log_level]


class SensitiveDataProcessor:
    """Structlog processor that redacts credential-like fields.

    Example:
        >>> processor = SensitiveDataProcessor()
        >>> processor(None, "info", {"event": "x", "new_password": "hunter2"})
        {'event': 'x', 'new_password': '***REDACTED***'}
    """

    def __call__(
        self,
        logger: Any,
        method_name: str,
        event_dict: MutableMapping[str, Any],
    ) -> MutableMapping[str, Any]:
        for key in list(event_dict.keys()):
            if self.is_sensitive(key):
                event_dict[key] = REDACTED_VALUE
        return event_dict

    @staticmethod
    def is_sensitive(key: str) -> bool:
        key_lower = key.lower()
        if key_lower in SENSITIVE_FIELDS:
            return True
        return "password" in key_lower or "token" in key_lower


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Return cached LoggingSettings. Clear with ``cache_clear()`` in tests."""
    return LoggingSettings()


def build_processors(settings: LoggingSettings) -> list[Processor]:
    """Return the structlog processor chain for ``settings``.

    Order: context merge, level, timestamp, redaction, exception
    formatting, then the environment-specific renderer.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        SensitiveDataProcessor(),
        structlog.processors.format_exc_info,
    ]
    if settings.use_json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    return processors


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    Call once during startup (the observability lifespan hook does this).
    Safe to call again; later calls replace the configuration.

    Args:
        settings: Optional settings; loaded from the environment when omitted.
    """
    if settings is None:
        settings = get_logging_settings()

    structlog.configure(
        processors=build_processors(settings),
        wrapper_class=structlog.make_filtering_bound_logger(settings.log_level_int),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        level=settings.log_level_int,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        force=True,
    )


def get_logger(name: str | None = None) -> structlog.typing.WrappedLogger:
    """Return a structlog logger, bound to ``name`` when given.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("user_event_published", event_kind="user.created")
    """
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger().bind(logger=name)
