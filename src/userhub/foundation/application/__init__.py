"""Userhub Foundation Application: application assembly primitives."""

from userhub.foundation.application.contributions import (
    LIFESPAN_PRIORITY_MESSAGING,
    LIFESPAN_PRIORITY_OBSERVABILITY,
    LIFESPAN_PRIORITY_PERSISTENCE,
    LIFESPAN_PRIORITY_SERVICES,
    LifespanContribution,
    MiddlewareContribution,
)

__all__ = [
    "LIFESPAN_PRIORITY_MESSAGING",
    "LIFESPAN_PRIORITY_OBSERVABILITY",
    "LIFESPAN_PRIORITY_PERSISTENCE",
    "LIFESPAN_PRIORITY_SERVICES",
    "LifespanContribution",
    "MiddlewareContribution",
]
