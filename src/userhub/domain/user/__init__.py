"""User bounded context: data model, event contract, ports and lifecycle service."""

from userhub.domain.user.events import (
    BINDING_KEY,
    EXCHANGE_NAME,
    QUEUE_NAME,
    UserEventKind,
    encode_user,
    encode_user_id,
)
from userhub.domain.user.ports import UserNotifierPort, UserRepositoryPort
from userhub.domain.user.service import UserService
from userhub.domain.user.user import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    User,
    UserDraft,
    UserFilter,
    UserPage,
    UserUpdate,
)

__all__ = [
    "BINDING_KEY",
    "DEFAULT_PAGE_SIZE",
    "EXCHANGE_NAME",
    "MAX_PAGE_SIZE",
    "QUEUE_NAME",
    "User",
    "UserDraft",
    "UserEventKind",
    "UserFilter",
    "UserNotifierPort",
    "UserPage",
    "UserRepositoryPort",
    "UserService",
    "UserUpdate",
    "encode_user",
    "encode_user_id",
]
