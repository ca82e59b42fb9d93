"""PostgreSQL-backed user repository.

One ``users`` table keyed by id, with a unique index on email that is
enforced independently of any service-level check. Database failures are
translated into domain errors at this boundary so callers never see
SQLAlchemy exceptions.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from userhub.domain.user.user import User
from userhub.foundation.domain.exceptions import DuplicateEmailError, TransientStoreError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Mapping

    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

    from userhub.domain.user.user import UserFilter

logger = logging.getLogger(__name__)

EMAIL_INDEX_NAME = "uq_users_email"

_COLUMNS = "id, first_name, last_name, nickname, email, country, created_at, updated_at"

# Filterable columns; criteria keys are checked against this before use in SQL.
_FILTER_COLUMNS = frozenset({"first_name", "last_name", "country"})


def _is_email_violation(exc: IntegrityError) -> bool:
    diag = getattr(exc.orig, "diag", None)
    if getattr(diag, "constraint_name", None) == EMAIL_INDEX_NAME:
        return True
    return EMAIL_INDEX_NAME in str(exc.orig)


@asynccontextmanager
async def _translate_errors(operation: str, *, email: str | None = None) -> AsyncIterator[None]:
    """Map storage exceptions onto the domain taxonomy."""
    try:
        yield
    except IntegrityError as exc:
        if email is not None and _is_email_violation(exc):
            raise DuplicateEmailError(email) from exc
        raise
    except (OperationalError, InterfaceError, PoolTimeoutError, TimeoutError) as exc:
        logger.warning("user_repository: %s failed: %s", operation, exc)
        raise TransientStoreError(operation, str(exc)) from exc
    except DBAPIError as exc:
        if exc.connection_invalidated:
            logger.warning("user_repository: %s lost its connection", operation)
            raise TransientStoreError(operation, "connection invalidated") from exc
        raise


def _row_to_user(row: Mapping[str, Any]) -> User:
    return User(
        id=str(row["id"]),
        first_name=row["first_name"],
        last_name=row["last_name"],
        nickname=row["nickname"],
        email=row["email"],
        country=row["country"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class SqlUserRepository:
    """User repository over an async SQLAlchemy session factory.

    Args:
        session_factory: Callable returning an ``AsyncSession`` context manager.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]) -> None:
        self._session_factory = session_factory

    # -- Writes --

    async def create(self, user: User, password_hash: str) -> None:
        """INSERT a new user row."""
        async with _translate_errors("create", email=user.email):
            async with self._session_factory() as session:
                await session.execute(
                    text(f"""
                        INSERT INTO users ({_COLUMNS}, password_hash)
                        VALUES
                            (:id, :first_name, :last_name, :nickname, :email,
                             :country, :created_at, :updated_at, :password_hash)
                    """),
                    {
                        "id": user.id,
                        "first_name": user.first_name,
                        "last_name": user.last_name,
                        "nickname": user.nickname,
                        "email": user.email,
                        "country": user.country,
                        "created_at": user.created_at,
                        "updated_at": user.updated_at,
                        "password_hash": password_hash,
                    },
                )
                await session.commit()

    async def update(self, user: User, password_hash: str | None = None) -> User | None:
        """UPDATE the mutable columns of ``user.id``, leaving ``created_at`` alone.

        ``updated_at`` never moves backwards, nor before ``created_at``. The credential
        column is only touched when ``password_hash`` is given.
        """
        assignments = [
            "first_name = :first_name",
            "last_name = :last_name",
            "nickname = :nickname",
            "email = :email",
            "country = :country",
            "updated_at = GREATEST(created_at, updated_at, :updated_at)",
        ]
        params: dict[str, Any] = {
            "id": user.id,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "nickname": user.nickname,
            "email": user.email,
            "country": user.country,
            "updated_at": user.updated_at,
        }
        if password_hash is not None:
            assignments.append("password_hash = :password_hash")
            params["password_hash"] = password_hash

        async with _translate_errors("update", email=user.email):
            async with self._session_factory() as session:
                result = await session.execute(
                    text(f"""
                        UPDATE users
                        SET {", ".join(assignments)}
                        WHERE id = :id
                        RETURNING {_COLUMNS}
                    """),
                    params,
                )
                row = result.mappings().one_or_none()
                await session.commit()
        return None if row is None else _row_to_user(row)

    async def delete_by_id(self, user_id: str) -> bool:
        """DELETE one user. Returns False when no row matched."""
        async with _translate_errors("delete"):
            async with self._session_factory() as session:
                result = await session.execute(
                    text("DELETE FROM users WHERE id = :id"),
                    {"id": user_id},
                )
                await session.commit()
        return bool(result.rowcount)

    # -- Reads --

    async def get_by_id(self, user_id: str) -> User | None:
        """SELECT one user by id; the credential column is never read."""
        async with _translate_errors("get_by_id"):
            async with self._session_factory() as session:
                result = await session.execute(
                    text(f"SELECT {_COLUMNS} FROM users WHERE id = :id"),
                    {"id": user_id},
                )
                row = result.mappings().one_or_none()
        return None if row is None else _row_to_user(row)

    async def list_users(self, user_filter: UserFilter) -> tuple[list[User], int]:
        """Return one window of matching users and the total match count.

        Rows are ordered by ``created_at`` then ``id`` so consecutive pages
        do not overlap.
        """
        criteria = user_filter.criteria()
        unknown = set(criteria) - _FILTER_COLUMNS
        if unknown:
            msg = f"Unsupported filter columns: {sorted(unknown)}"
            raise ValueError(msg)

        where = ""
        if criteria:
            where = "WHERE " + " AND ".join(f"{column} = :{column}" for column in criteria)

        async with _translate_errors("list_users"):
            async with self._session_factory() as session:
                total = await session.scalar(
                    text(f"SELECT COUNT(*) FROM users {where}"),
                    criteria,
                )
                result = await session.execute(
                    text(f"""
                        SELECT {_COLUMNS} FROM users
                        {where}
                        ORDER BY created_at, id
                        OFFSET :skip LIMIT :limit
                    """),
                    {**criteria, "skip": user_filter.skip, "limit": user_filter.limit},
                )
                rows = result.mappings().all()
        return [_row_to_user(row) for row in rows], int(total or 0)

    async def exists_by_email(self, email: str) -> bool:
        async with _translate_errors("exists_by_email"):
            async with self._session_factory() as session:
                found = await session.scalar(
                    text("SELECT EXISTS (SELECT 1 FROM users WHERE email = :email)"),
                    {"email": email},
                )
        return bool(found)

    # -- Schema --

    @staticmethod
    async def ensure_table_exists(engine: AsyncEngine) -> None:
        """Create the ``users`` table and its unique email index if absent."""
        async with engine.begin() as conn:
            await conn.execute(
                text("""
                    CREATE TABLE IF NOT EXISTS users (
                        id TEXT PRIMARY KEY,
                        first_name TEXT NOT NULL,
                        last_name TEXT NOT NULL,
                        nickname TEXT NOT NULL DEFAULT '',
                        email TEXT NOT NULL,
                        country TEXT NOT NULL DEFAULT '',
                        password_hash TEXT NOT NULL,
                        created_at TIMESTAMP WITH TIME ZONE NOT NULL,
                        updated_at TIMESTAMP WITH TIME ZONE NOT NULL
                    )
                """)
            )
            await conn.execute(
                text(f"CREATE UNIQUE INDEX IF NOT EXISTS {EMAIL_INDEX_NAME} ON users (email)")
            )
            await conn.execute(
                text(
                    "CREATE INDEX IF NOT EXISTS idx_users_names_country "
                    "ON users (first_name, last_name, country)"
                )
            )
