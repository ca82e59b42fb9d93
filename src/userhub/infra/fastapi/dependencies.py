"""FastAPI dependencies resolving application-scoped services.

The lifespan hooks store long-lived objects on ``app.state``; these
dependencies hand them to endpoints.
"""

# NOTE: Do NOT use ``from __future__ import annotations`` here.
# FastAPI resolves ``Request`` and ``Annotated`` dependency types at runtime.

from typing import Annotated

from fastapi import Depends, Request

from userhub.domain.user.service import UserService


def get_user_service(request: Request) -> UserService:
    """Return the UserService created by the services lifespan hook.

    Raises:
        RuntimeError: The application was started without that hook.
    """
    service = getattr(request.app.state, "user_service", None)
    if service is None:
        msg = "UserService is not initialized; register the services lifespan hook"
        raise RuntimeError(msg)
    return service


UserServiceDep = Annotated[UserService, Depends(get_user_service)]
