"""FastAPI application factory.

Provides :func:`create_app`, which wires middleware, RFC 7807 error
handlers, the health endpoint, routers and ordered lifespan hooks into a
FastAPI application. Contributions are passed explicitly by the caller.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from userhub.infra.fastapi._health import router as health_router
from userhub.infra.fastapi.error_handlers import register_exception_handlers
from userhub.infra.fastapi.lifespan import compose_lifespan
from userhub.infra.fastapi.middleware.request_id import contribution as request_id_contribution
from userhub.infra.fastapi.settings import AppSettings, get_app_settings

if TYPE_CHECKING:
    from fastapi import APIRouter

    from userhub.foundation.application import LifespanContribution, MiddlewareContribution

logger = logging.getLogger(__name__)


def create_app(
    settings: AppSettings | None = None,
    *,
    routers: list[APIRouter] | None = None,
    middleware: list[MiddlewareContribution] | None = None,
    lifespan_hooks: list[LifespanContribution] | None = None,
) -> FastAPI:
    """Create a FastAPI application from explicit contributions.

    The request-id middleware, CORS, the exception handlers and
    ``/healthz`` are always installed.

    Args:
        settings: Application settings. If ``None``, loaded from environment.
        routers: Domain routers to include.
        middleware: Middleware beyond the request-id middleware.
        lifespan_hooks: Lifespan hooks, ordered by priority at startup.

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or get_app_settings()

    app = FastAPI(
        title=settings.title,
        version=settings.version,
        description=settings.description,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
        debug=settings.debug,
        lifespan=compose_lifespan(list(lifespan_hooks or [])),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.allow_origins,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
        expose_headers=settings.cors.expose_headers,
    )

    middleware_contribs = [request_id_contribution, *(middleware or [])]
    # Starlette wraps in reverse order of registration; lowest priority ends up outermost.
    middleware_contribs.sort(key=lambda m: m.priority)
    for mw in reversed(middleware_contribs):
        app.add_middleware(mw.middleware_class, **mw.kwargs)
        logger.info(
            "Registered middleware %s (priority=%d)",
            mw.middleware_class.__name__,
            mw.priority,
        )

    register_exception_handlers(app)

    app.include_router(health_router)
    for router in routers or []:
        app.include_router(router)
        logger.info("Included router: %s", router.prefix or "/")

    return app
