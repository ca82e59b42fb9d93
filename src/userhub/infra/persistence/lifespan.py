"""Persistence lifespan hook for startup/shutdown resource management.

Handles:
- Database connectivity check on startup (``SELECT 1``, bounded by
  ``DATABASE_CONNECT_TIMEOUT``)
- ``users`` table and unique email index bootstrap
- Publishing the repository on ``app.state.user_repository``
- Engine disposal on shutdown

Priority 75 starts persistence after observability (50) and before
messaging (100) and the service wiring (150).
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import text

from userhub.foundation.application import LIFESPAN_PRIORITY_PERSISTENCE, LifespanContribution
from userhub.infra.persistence.database import get_database_manager
from userhub.infra.persistence.user_repository import SqlUserRepository

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _persistence_lifespan(app: Any) -> AsyncIterator[None]:
    """Manage the user store across the application lifecycle.

    Startup:
        1. ``SELECT 1`` within the connect timeout; failure aborts startup.
        2. Create the schema if absent.
        3. Expose the engine and repository on ``app.state``.

    Shutdown:
        Dispose the engine and its pool.

    Args:
        app: The FastAPI application instance.
    """
    manager = get_database_manager()
    engine = manager.get_engine()
    timeout = manager.settings.connect_timeout

    async def _ping() -> None:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    try:
        await asyncio.wait_for(_ping(), timeout=timeout)
    except TimeoutError:
        await manager.dispose()
        msg = f"Database did not answer within {timeout}s"
        raise RuntimeError(msg) from None
    except Exception:
        await manager.dispose()
        raise
    logger.info("persistence_lifespan: database health check passed")

    await SqlUserRepository.ensure_table_exists(engine)
    logger.info("persistence_lifespan: users schema ensured")

    app.state.db_engine = engine
    app.state.user_repository = SqlUserRepository(manager.get_session_factory())

    try:
        yield
    finally:
        await manager.dispose()
        logger.info("persistence_lifespan: database engine disposed")


lifespan_contribution = LifespanContribution(
    hook=_persistence_lifespan,
    priority=LIFESPAN_PRIORITY_PERSISTENCE,
)
