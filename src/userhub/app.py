"""Userhub application assembly.

Wires the infrastructure lifespan hooks, the user service and the users
router into one FastAPI application.

Usage::

    from userhub.app import create_userhub_app

    app = create_userhub_app()
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from userhub.domain.user.service import UserService
from userhub.foundation.application import LIFESPAN_PRIORITY_SERVICES, LifespanContribution
from userhub.infra.fastapi import create_app, users_router
from userhub.infra.messaging import lifespan_contribution as messaging_lifespan
from userhub.infra.messaging.settings import get_rabbitmq_settings
from userhub.infra.observability import lifespan_contribution as observability_lifespan
from userhub.infra.persistence import lifespan_contribution as persistence_lifespan
from userhub.infra.security import BcryptPasswordHasher, get_password_hasher_settings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

    from userhub.infra.fastapi import AppSettings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _services_lifespan(app: Any) -> AsyncIterator[None]:
    """Build the UserService from the repository and notifier on ``app.state``.

    Shutdown waits for in-flight event publishes (bounded by the publish
    timeout) before the messaging hook closes the broker connection.
    """
    publish_timeout = get_rabbitmq_settings().publish_timeout
    hasher = BcryptPasswordHasher(rounds=get_password_hasher_settings().bcrypt_rounds)
    service = UserService(
        app.state.user_repository,
        app.state.user_notifier,
        hasher,
        publish_timeout=publish_timeout,
    )
    app.state.user_service = service
    logger.info("services_lifespan: user service ready")

    try:
        yield
    finally:
        await service.drain(timeout=publish_timeout)
        logger.info("services_lifespan: pending user events drained")


services_lifespan = LifespanContribution(
    hook=_services_lifespan,
    priority=LIFESPAN_PRIORITY_SERVICES,
)

DEFAULT_LIFESPAN_HOOKS: tuple[LifespanContribution, ...] = (
    observability_lifespan,
    persistence_lifespan,
    messaging_lifespan,
    services_lifespan,
)


def create_userhub_app(
    settings: AppSettings | None = None,
    *,
    lifespan_hooks: list[LifespanContribution] | None = None,
) -> FastAPI:
    """Create the userhub application.

    Args:
        settings: Application settings. If ``None``, loaded from environment.
        lifespan_hooks: Replace the default hooks (PostgreSQL, RabbitMQ,
            logging, service wiring), e.g. with in-memory doubles in tests.
    """
    hooks = list(lifespan_hooks) if lifespan_hooks is not None else list(DEFAULT_LIFESPAN_HOOKS)
    return create_app(settings, routers=[users_router], lifespan_hooks=hooks)
