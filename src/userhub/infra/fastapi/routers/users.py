"""User REST API router.

Maps the five lifecycle operations onto HTTP:

- ``POST /users`` -> 201 ``{id, created_at}``
- ``PUT /users/{user_id}`` -> 200 ``{id, updated_at}``
- ``DELETE /users/{user_id}`` -> 200 ``{id}``
- ``GET /users/{user_id}`` -> 200 user record (no credential)
- ``GET /users`` -> 200 ``{users, total_count, page, page_size}``

Request fields default to empty so the domain, not the schema, decides
which missing fields are reported.
"""

# NOTE: Do NOT use ``from __future__ import annotations`` here.
# FastAPI needs runtime-evaluable annotations on endpoint parameters.

from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel, Field

from userhub.domain.user.user import DEFAULT_PAGE_SIZE, User, UserDraft, UserFilter, UserUpdate
from userhub.infra.fastapi.dependencies import UserServiceDep

router = APIRouter(prefix="/users", tags=["users"])


# -- Request / Response models ------------------------------------------------


class CreateUserRequest(BaseModel):
    first_name: str = ""
    last_name: str = ""
    nickname: str = ""
    email: str = ""
    password: str = Field(default="", repr=False)
    country: str = ""


class UpdateUserRequest(BaseModel):
    first_name: str = ""
    last_name: str = ""
    nickname: str = ""
    email: str = ""
    password: str | None = Field(
        default=None,
        repr=False,
        description="New password; omit or null to keep the current one",
    )
    country: str = ""


class CreateUserResponse(BaseModel):
    id: str
    created_at: datetime


class UpdateUserResponse(BaseModel):
    id: str
    updated_at: datetime


class DeleteUserResponse(BaseModel):
    id: str


class UserResponse(BaseModel):
    id: str
    first_name: str
    last_name: str
    nickname: str
    email: str
    country: str
    created_at: datetime
    updated_at: datetime


class UserListResponse(BaseModel):
    users: list[UserResponse]
    total_count: int
    page: int
    page_size: int


# -- Endpoints ----------------------------------------------------------------


@router.post("", status_code=201)
async def create_user(body: CreateUserRequest, service: UserServiceDep) -> CreateUserResponse:
    """Create a user. Responds before the ``user.created`` event is confirmed."""
    user = await service.create_user(
        UserDraft(
            first_name=body.first_name,
            last_name=body.last_name,
            nickname=body.nickname,
            email=body.email,
            password=body.password,
            country=body.country,
        )
    )
    return CreateUserResponse(id=user.id, created_at=user.created_at)


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    body: UpdateUserRequest,
    service: UserServiceDep,
) -> UpdateUserResponse:
    """Replace a user's fields."""
    user = await service.update_user(
        UserUpdate(
            id=user_id,
            first_name=body.first_name,
            last_name=body.last_name,
            nickname=body.nickname,
            email=body.email,
            country=body.country,
            password=body.password,
        )
    )
    return UpdateUserResponse(id=user.id, updated_at=user.updated_at)


@router.delete("/{user_id}")
async def delete_user(user_id: str, service: UserServiceDep) -> DeleteUserResponse:
    """Hard-delete a user."""
    await service.delete_user(user_id)
    return DeleteUserResponse(id=user_id)


@router.get("/{user_id}")
async def get_user(user_id: str, service: UserServiceDep) -> UserResponse:
    """Retrieve a user by id."""
    return _user_response(await service.get_user(user_id))


@router.get("")
async def list_users(
    service: UserServiceDep,
    first_name: str | None = None,
    last_name: str | None = None,
    country: str | None = None,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> UserListResponse:
    """List users matching every given filter, one page at a time."""
    result = await service.list_users(
        UserFilter(
            first_name=first_name,
            last_name=last_name,
            country=country,
            page=page,
            page_size=page_size,
        )
    )
    return UserListResponse(
        users=[_user_response(user) for user in result.users],
        total_count=result.total,
        page=result.page,
        page_size=result.page_size,
    )


# -- Helpers ------------------------------------------------------------------


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        nickname=user.nickname,
        email=user.email,
        country=user.country,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )
