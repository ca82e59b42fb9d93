"""Userhub Infra FastAPI -- app factory, error handlers, middleware, routers."""

from userhub.infra.fastapi.app_factory import create_app
from userhub.infra.fastapi.dependencies import UserServiceDep, get_user_service
from userhub.infra.fastapi.error_handlers import ProblemDetail, register_exception_handlers
from userhub.infra.fastapi.lifespan import compose_lifespan
from userhub.infra.fastapi.middleware.request_id import RequestIdMiddleware, get_request_id
from userhub.infra.fastapi.routers.users import router as users_router
from userhub.infra.fastapi.settings import AppSettings, CORSSettings, get_app_settings

__all__ = [
    "AppSettings",
    "CORSSettings",
    "ProblemDetail",
    "RequestIdMiddleware",
    "UserServiceDep",
    "compose_lifespan",
    "create_app",
    "get_app_settings",
    "get_request_id",
    "get_user_service",
    "register_exception_handlers",
    "users_router",
]
