"""Async database engine and session factory for the user store.

Usage:
    from userhub.infra.persistence.database import DatabaseManager, DatabaseSettings

    manager = DatabaseManager(DatabaseSettings())
    session_factory = manager.get_session_factory()
    async with session_factory() as session:
        ...
    await manager.dispose()
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


class DatabaseSettings(BaseSettings):
    """Database connection configuration from ``DATABASE_*`` variables.

    ``DATABASE_HOST``, ``DATABASE_PORT`` and ``DATABASE_NAME`` are required;
    constructing the settings without them raises ``pydantic.ValidationError``.

    Example:
        >>> settings = DatabaseSettings(host="db", port=5432, name="users")
        >>> settings.database_url
        'postgresql+psycopg://postgres:postgres@db:5432/users'
    """

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(..., min_length=1, description="PostgreSQL host")
    port: int = Field(..., ge=1, le=65535, description="PostgreSQL port")
    name: str = Field(..., min_length=1, description="PostgreSQL database name")
    user: str = Field(default="postgres", description="PostgreSQL user")
    password: str = Field(default="postgres", repr=False, description="PostgreSQL password")

    pool_size: int = Field(default=10, ge=1, le=100, description="Engine base pool size")
    max_overflow: int = Field(default=5, ge=0, le=100, description="Engine max overflow")
    pool_timeout: int = Field(
        default=30, ge=1, le=300, description="Seconds to wait for a pooled connection"
    )
    pool_recycle: int = Field(
        default=3600, ge=60, le=86400, description="Seconds before a connection is recycled"
    )
    connect_timeout: float = Field(
        default=3.0, gt=0, le=60, description="Startup connectivity check deadline (seconds)"
    )
    echo: bool = Field(default=False, description="Echo SQL statements to log")

    @model_validator(mode="after")
    def _validate_connection_url(self) -> DatabaseSettings:
        """Validate the built connection URL is parseable by SQLAlchemy."""
        from sqlalchemy.engine.url import make_url

        try:
            make_url(self.database_url)
        except Exception as exc:
            msg = f"Invalid database connection URL: {exc}"
            raise ValueError(msg) from exc
        return self

    @property
    def database_url(self) -> str:
        """Async connection URL using the psycopg driver."""
        return (
            f"postgresql+psycopg://{self.user}:{self.password}@{self.host}:{self.port}/{self.name}"
        )


class DatabaseManager:
    """Owns the async engine and session factory.

    Both are created lazily and dropped by :meth:`dispose`, after which
    they are re-created on next use.
    """

    def __init__(self, settings: DatabaseSettings) -> None:
        self._settings = settings
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def settings(self) -> DatabaseSettings:
        return self._settings

    def get_engine(self) -> AsyncEngine:
        if self._engine is None:
            s = self._settings
            self._engine = create_async_engine(
                s.database_url,
                pool_size=s.pool_size,
                max_overflow=s.max_overflow,
                pool_pre_ping=True,
                pool_timeout=s.pool_timeout,
                pool_recycle=s.pool_recycle,
                echo=s.echo,
                connect_args={"connect_timeout": max(1, int(s.connect_timeout))},
            )
        return self._engine

    def get_session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                self.get_engine(),
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
        return self._session_factory

    async def dispose(self) -> None:
        """Dispose the engine and its pool. Safe to call multiple times."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
    """Return cached DatabaseSettings loaded from the environment."""
    return DatabaseSettings()  # type: ignore[call-arg]


@lru_cache(maxsize=1)
def get_database_manager() -> DatabaseManager:
    """Return the process-wide DatabaseManager."""
    return DatabaseManager(get_database_settings())
