"""Userhub Infra Persistence -- async engine, user repository, lifespan hook."""

from userhub.infra.persistence.database import (
    DatabaseManager,
    DatabaseSettings,
    get_database_manager,
    get_database_settings,
)
from userhub.infra.persistence.lifespan import lifespan_contribution
from userhub.infra.persistence.user_repository import EMAIL_INDEX_NAME, SqlUserRepository

__all__ = [
    "EMAIL_INDEX_NAME",
    "DatabaseManager",
    "DatabaseSettings",
    "SqlUserRepository",
    "get_database_manager",
    "get_database_settings",
    "lifespan_contribution",
]
