"""Contribution types for assembling the service at startup.

Infrastructure packages expose a :class:`LifespanContribution` describing
how they acquire and release their resources, and a
:class:`MiddlewareContribution` for ASGI middleware they provide. The app
factory orders both by priority. These types are framework-agnostic and
live in the foundation layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Lifespan priority bands (lower starts first, stops last)
LIFESPAN_PRIORITY_OBSERVABILITY = 50
LIFESPAN_PRIORITY_PERSISTENCE = 75
LIFESPAN_PRIORITY_MESSAGING = 100
LIFESPAN_PRIORITY_SERVICES = 150


@dataclass(frozen=True, slots=True)
class LifespanContribution:
    """Describes a lifespan hook to be registered on the application.

    Attributes:
        hook: An async context manager factory ``(app) -> AsyncContextManager[None]``.
        priority: Ordering priority. Lower priorities start first (and shut down last).
    """

    hook: Any  # Callable[[Any], AsyncContextManager[None]]
    priority: int = 500


@dataclass(frozen=True, slots=True)
class MiddlewareContribution:
    """Describes an ASGI middleware to be added to the application.

    Attributes:
        middleware_class: The middleware class, instantiated as ``cls(app, **kwargs)``.
        priority: Lower priorities wrap outermost (see the first request).
        kwargs: Extra constructor arguments.
    """

    middleware_class: type[Any]
    priority: int = 500
    kwargs: dict[str, Any] = field(default_factory=dict)
