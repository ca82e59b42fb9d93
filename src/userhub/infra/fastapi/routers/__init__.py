"""HTTP routers."""

from userhub.infra.fastapi.routers.users import router as users_router

__all__ = ["users_router"]
