"""Lifespan composition for the userhub app factory.

Composes :class:`~userhub.foundation.application.LifespanContribution`
hooks into a single FastAPI-compatible lifespan context manager.
"""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable
    from contextlib import AbstractAsyncContextManager

    from fastapi import FastAPI

    from userhub.foundation.application import LifespanContribution

logger = logging.getLogger(__name__)


def compose_lifespan(
    hooks: list[LifespanContribution],
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    """Create a composite lifespan from :class:`LifespanContribution` hooks.

    Hooks are sorted by priority (ascending, stable). Lower priority hooks
    start first and shut down last. If a hook fails during startup, hooks
    already entered are exited in reverse order before the error propagates.

    Args:
        hooks: LifespanContribution instances in any order.

    Returns:
        An async context manager factory for FastAPI's ``lifespan`` parameter.
    """
    sorted_hooks = sorted(hooks, key=lambda h: h.priority)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        async with AsyncExitStack() as stack:
            for contrib in sorted_hooks:
                logger.info(
                    "Entering lifespan hook (priority=%d): %s",
                    contrib.priority,
                    _hook_name(contrib.hook),
                )
                await stack.enter_async_context(contrib.hook(app))
            yield

    return lifespan


def _hook_name(hook: Any) -> str:
    return f"{getattr(hook, '__module__', '?')}.{getattr(hook, '__qualname__', repr(hook))}"
