"""Messaging lifespan hook for broker startup/shutdown.

Connects the notifier and declares the topology at startup; a broker
that cannot be reached aborts startup. Priority 100 starts messaging
after persistence (75) and before the service wiring (150), so the
service drains its in-flight publishes before the connection closes.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from userhub.foundation.application import LIFESPAN_PRIORITY_MESSAGING, LifespanContribution
from userhub.infra.messaging.notifier import RabbitMQNotifier
from userhub.infra.messaging.settings import get_rabbitmq_settings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _messaging_lifespan(app: Any) -> AsyncIterator[None]:
    """Manage the RabbitMQ notifier lifecycle.

    Startup: connect and expose ``app.state.user_notifier``.
    Shutdown: close the connection.

    Args:
        app: The FastAPI application instance.
    """
    notifier = RabbitMQNotifier(get_rabbitmq_settings())
    await notifier.connect()
    app.state.user_notifier = notifier
    logger.info("messaging_lifespan: notifier connected")

    try:
        yield
    finally:
        await notifier.close()
        logger.info("messaging_lifespan: notifier closed")


lifespan_contribution = LifespanContribution(
    hook=_messaging_lifespan,
    priority=LIFESPAN_PRIORITY_MESSAGING,
)
